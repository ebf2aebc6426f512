import logging

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging once. Idempotent.
    If handlers are already installed (uvicorn, pytest) only the level is set.
    """
    resolved = _LEVELS.get((level or "").strip().upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
