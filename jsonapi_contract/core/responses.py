"""Response classes and routes that render JSON:API documents."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Coroutine
from contextvars import ContextVar
from dataclasses import dataclass
import functools
import inspect
import json
from typing import Any

from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.routing import APIRoute
from pydantic_core import PydanticSerializationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from jsonapi_contract.core.media_type import MEDIA_TYPE

UNSERIALIZABLE_MESSAGE = "Unserializable entities in the response body"

# Raised by FastAPI's encoders and pydantic when a return value has no JSON form.
SERIALIZATION_ERRORS = (TypeError, ValueError, RecursionError, PydanticSerializationError)


def _unserializable() -> StarletteHTTPException:
    return StarletteHTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=UNSERIALIZABLE_MESSAGE)


def serialize_response_body(body: Any) -> str:
    """Render a response body as JSON text or fail the request with a 400."""

    try:
        return json.dumps(body, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as exc:
        raise _unserializable() from exc


class JSONAPIResponse(JSONResponse):
    """Default route response, rendered through the checked serializer."""

    media_type = MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return serialize_response_body(content).encode("utf-8")


class ErrorDocumentResponse(JSONResponse):
    """Error document response; documents are built internally so rendering is unchecked."""

    media_type = MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, check_circular=False, separators=(",", ":")).encode("utf-8")


@dataclass
class _EndpointOutcome:
    returned: bool = False


_endpoint_outcome: ContextVar[_EndpointOutcome | None] = ContextVar("jsonapi_endpoint_outcome", default=None)


def _mark_returned() -> None:
    outcome = _endpoint_outcome.get()
    if outcome is not None:
        outcome.returned = True


def _track_return(call: Callable[..., Any]) -> Callable[..., Any]:
    if inspect.iscoroutinefunction(call):

        @functools.wraps(call)
        async def tracked_async(*args: Any, **kwargs: Any) -> Any:
            result = await call(*args, **kwargs)
            _mark_returned()
            return result

        tracked_async.__jsonapi_tracked__ = True  # type: ignore[attr-defined]
        return tracked_async

    @functools.wraps(call)
    def tracked(*args: Any, **kwargs: Any) -> Any:
        result = call(*args, **kwargs)
        _mark_returned()
        return result

    tracked.__jsonapi_tracked__ = True  # type: ignore[attr-defined]
    return tracked


class JSONAPIRoute(APIRoute):
    """APIRoute that turns failures to encode a handler's return value into a 400.

    Exceptions raised by the endpoint itself are left alone; only those raised
    after it returned, while FastAPI encodes and renders the result, are
    reported as unserializable.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        if self.dependant.call is not None and not getattr(self.dependant.call, "__jsonapi_tracked__", False):
            self.dependant.call = _track_return(self.dependant.call)
        handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            outcome = _EndpointOutcome()
            token = _endpoint_outcome.set(outcome)
            try:
                return await handler(request)
            except SERIALIZATION_ERRORS as exc:
                if not outcome.returned:
                    raise
                raise _unserializable() from exc
            finally:
                _endpoint_outcome.reset(token)

        return route_handler
