"""Media type negotiation for the JSON:API content type."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from starlette.exceptions import HTTPException as StarletteHTTPException

MEDIA_TYPE = "application/vnd.api+json"
ANY_MEDIA_TYPE = "*/*"
ALLOWED_CONTENT_TYPE_PARAMS = frozenset({"charset"})


@dataclass(frozen=True)
class AcceptEntry:
    """One media range from an Accept header."""

    media_type: str
    params: dict[str, str] = field(default_factory=dict)
    q: float = 1.0
    position: int = 0
    entry: str = ""

    def __post_init__(self) -> None:
        if not self.entry:
            object.__setattr__(self, "entry", self.media_type)

    @property
    def priority(self) -> tuple[float, int, int, int]:
        # Higher sorts first: quality, specificity, parameter count, header order.
        return (self.q, -self.media_type.count("*"), len(self.params), -self.position)


def _split_params(raw: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    for char in raw:
        if char == '"':
            quoted = not quoted
        if char == ";" and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def parse_media_type(header: str | None) -> tuple[str | None, dict[str, str]]:
    """Split a Content-Type style header into its lowercase type and parameters."""

    if not header or not header.strip():
        return None, {}

    head, *raw_params = _split_params(header)
    media_type = head.strip().replace(" ", "").lower() or None
    params: dict[str, str] = {}
    for raw in raw_params:
        if not raw.strip():
            continue
        key, _, value = raw.strip().partition("=")
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1].replace('\\"', '"')
        params[key.strip().lower()] = value
    return media_type, params


def _parse_quality(raw: str | None) -> float:
    if raw is None:
        return 1.0
    try:
        return float(raw)
    except ValueError:
        return 0.0


def parse_accept(header: str | None) -> list[AcceptEntry]:
    """Parse an Accept header into entries ordered from most to least preferred."""

    if not header or not header.strip():
        return [AcceptEntry(media_type=ANY_MEDIA_TYPE)]

    entries: list[AcceptEntry] = []
    for position, raw in enumerate(header.split(",")):
        media_type, params = parse_media_type(raw)
        if media_type is None:
            continue
        q = _parse_quality(params.pop("q", None))
        entries.append(AcceptEntry(media_type=media_type, params=params, q=q, position=position, entry=raw.strip()))

    if not entries:
        return [AcceptEntry(media_type=ANY_MEDIA_TYPE)]
    return sorted(entries, key=lambda entry: entry.priority, reverse=True)


def preferred_type(request: Request) -> AcceptEntry:
    """Return the media range the client prefers most."""
    return parse_accept(request.headers.get("accept"))[0]


def _has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    raw_length = request.headers.get("content-length")
    if raw_length is None:
        return False
    try:
        return int(raw_length) > 0
    except ValueError:
        return True


def enforce_media_type(request: Request) -> None:
    """Reject requests that do not speak the JSON:API media type.

    Checks run in order and the first failure wins:

    1. the preferred Accept entry, parameters included, must be exactly the
       JSON:API type (406),
    2. a request body must be declared as the JSON:API type (415),
    3. the only Content-Type parameter allowed is ``charset`` (415).
    """

    accepted = preferred_type(request)
    if accepted.entry != MEDIA_TYPE:
        raise StarletteHTTPException(status_code=status.HTTP_406_NOT_ACCEPTABLE)

    media_type, params = parse_media_type(request.headers.get("content-type"))
    if _has_body(request) and media_type != MEDIA_TYPE:
        raise StarletteHTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

    if any(key not in ALLOWED_CONTENT_TYPE_PARAMS for key in params):
        raise StarletteHTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)


def register_media_type(app: FastAPI, alias: str, media_type: str = MEDIA_TYPE) -> None:
    """Register a media type under a short alias on the application."""

    media_types = dict(getattr(app.state, "media_types", {}))
    media_types[alias] = media_type
    app.state.media_types = media_types


def resolve_media_type(app: FastAPI, alias: str, default: str = MEDIA_TYPE) -> str:
    """Return the media type registered under ``alias`` on the application."""

    media_types: dict[str, str] = getattr(app.state, "media_types", {})
    return media_types.get(alias, default)
