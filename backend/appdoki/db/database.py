from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.engine.url import URL, make_url
import ssl
from appdoki.config import get_settings

settings = get_settings()


def _asyncpg_url_and_args(raw_url: str) -> tuple[URL | str, dict]:
    """asyncpg does not accept sslmode as a query param; translate it to connect_args."""
    connect_args: dict = {}
    url_obj = make_url(raw_url)
    if not url_obj.drivername.startswith("postgresql+asyncpg"):
        return raw_url, connect_args

    query = dict(url_obj.query)
    sslmode = query.pop("sslmode", None)
    if sslmode and str(sslmode).lower() != "disable":
        mode = str(sslmode).lower()
        if mode in {"require", "prefer", "allow"}:
            # Match libpq sslmode=require (use SSL but do not verify cert)
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            connect_args["ssl"] = context
        else:
            # verify-full / verify-ca -> default verification
            connect_args["ssl"] = ssl.create_default_context()
    return url_obj.set(query=query), connect_args


def build_engine(raw_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    db_url, connect_args = _asyncpg_url_and_args(raw_url)
    return create_async_engine(db_url, echo=echo, connect_args=connect_args, **kwargs)


engine = build_engine(settings.database_url, echo=settings.debug)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass
