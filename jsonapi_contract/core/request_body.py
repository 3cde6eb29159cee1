"""Request body decoding for JSON:API handlers."""

from __future__ import annotations

import json
import sys
from typing import Any

from fastapi import Request
from fastapi import status
from starlette.exceptions import HTTPException as StarletteHTTPException

MALFORMED_JSON_MESSAGE = "Malformed JSON in the request body"


def _interned_object(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    return {sys.intern(key): value for key, value in pairs}


def decode_body(raw: bytes) -> Any:
    """Decode raw JSON bytes, interning every object key."""

    if not raw:
        return {}
    try:
        return json.loads(raw, object_pairs_hook=_interned_object)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise StarletteHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=MALFORMED_JSON_MESSAGE,
        ) from exc


async def deserialize_request_body(request: Request) -> Any:
    """Return the parsed request body, or an empty mapping when there is none."""
    return decode_body(await request.body())
