"""Application configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_PROGNAME = "jsonapi"
DEFAULT_MEDIA_TYPE_ALIAS = "api_json"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class JSONAPISettings:
    """Process-wide settings for the JSON:API layer, fixed at startup."""

    progname: str = DEFAULT_PROGNAME
    media_type_alias: str = DEFAULT_MEDIA_TYPE_ALIAS
    expose_exception_detail: bool = True
    static_enabled: bool = False
    protection_enabled: bool = False

    def safe_for_logging(self) -> dict[str, str | bool]:
        """Return settings safe for logs."""
        return {
            "progname": self.progname,
            "media_type_alias": self.media_type_alias,
            "expose_exception_detail": self.expose_exception_detail,
            "static_enabled": self.static_enabled,
            "protection_enabled": self.protection_enabled,
        }


@lru_cache(maxsize=1)
def get_settings() -> JSONAPISettings:
    """Load JSON:API settings from the environment."""
    return JSONAPISettings(
        progname=os.getenv("JSONAPI_PROGNAME", DEFAULT_PROGNAME),
        expose_exception_detail=_get_bool_env("JSONAPI_EXPOSE_EXCEPTION_DETAIL", True),
    )
