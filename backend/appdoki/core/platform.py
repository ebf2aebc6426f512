"""Client platform selector parsed from the ``platform`` request header."""

from enum import Enum
from typing import Optional


class Platform(str, Enum):
    WEB = "web"
    IOS = "ios"
    ANDROID = "android"

    @classmethod
    def from_header(cls, value: Optional[str]) -> "Platform":
        """Parse a header value case-insensitively. Unknown or missing means web."""
        if not value:
            return cls.WEB
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.WEB
