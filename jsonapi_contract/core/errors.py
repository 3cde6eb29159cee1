"""JSON:API error normalization and exception handler registration."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
import enum
from http import HTTPStatus
import logging
from typing import Any
import uuid

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from jsonapi_contract.core.config import JSONAPISettings
from jsonapi_contract.core.media_type import resolve_media_type
from jsonapi_contract.core.request_body import MALFORMED_JSON_MESSAGE
from jsonapi_contract.core.responses import ErrorDocumentResponse
from jsonapi_contract.schemas.error import ErrorDocument
from jsonapi_contract.schemas.error import ErrorObject
from jsonapi_contract.schemas.error import ErrorSource

logger = logging.getLogger(__name__)

NOT_FOUND_TITLE = "Not Found"
UNKNOWN_ERROR_TITLE = "Unknown Error"
VALIDATION_ERROR_TITLE = "Invalid Request"
# Starlette's body for an unmatched route.
DEFAULT_NOT_FOUND_BODY = HTTPStatus.NOT_FOUND.phrase


class JSONAPIError(Exception):
    """Base application exception for explicit JSON:API error responses."""

    def __init__(
        self,
        *,
        status_code: int,
        title: str | None = None,
        detail: str | None = None,
        source: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(detail or title or "")
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.source = dict(source) if source else None

    def as_mapping(self) -> dict[str, Any]:
        return {"title": self.title, "detail": self.detail, "source": self.source}


class NotFoundError(JSONAPIError):
    """Convenience exception for missing resources."""

    def __init__(self, *, detail: str | None = None, source: Mapping[str, Any] | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            title=NOT_FOUND_TITLE,
            detail=detail,
            source=source,
        )


class BodyKind(enum.Enum):
    STRUCTURED = "structured"
    SEQUENCE = "sequence"
    SCALAR = "scalar"
    EMPTY = "empty"


@dataclass(frozen=True)
class ResponseBody:
    """Whatever a failing handler left as the response body, tagged by shape."""

    kind: BodyKind
    value: Any = None

    @classmethod
    def from_value(cls, value: Any) -> ResponseBody:
        if value is None or value == "":
            return cls(BodyKind.EMPTY)
        if isinstance(value, Mapping):
            return cls(BodyKind.STRUCTURED, value)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return cls(BodyKind.SEQUENCE, list(value)) if value else cls(BodyKind.EMPTY)
        return cls(BodyKind.SCALAR, value)

    @property
    def first(self) -> Any:
        """The body viewed as a sequence: its first element, if any."""
        if self.kind is BodyKind.SEQUENCE:
            return self.value[0]
        if self.kind is BodyKind.SCALAR:
            return self.value
        return None


@dataclass(frozen=True)
class NormalizedError:
    title: str | None = None
    detail: str | None = None
    source: Mapping[str, Any] | None = None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def normalized_error(
    status_code: int | None,
    body: ResponseBody,
    exception: BaseException | None = None,
    *,
    expose_exception_detail: bool = True,
) -> NormalizedError:
    """Derive a title and detail from the state of a failed response.

    Precedence, first match wins:

    1. a structured body set by the handler is used as is,
    2. a 404 with a body is "Not Found"; the framework's default body gives no detail,
    3. an unhandled exception is "Unknown Error" with the exception message as detail,
    4. any other body becomes the detail,
    5. otherwise title and detail are both absent.
    """

    if body.kind is BodyKind.STRUCTURED:
        return NormalizedError(
            title=_text(body.value.get("title")),
            detail=_text(body.value.get("detail")),
            source=body.value.get("source"),
        )

    first = body.first
    if status_code == status.HTTP_404_NOT_FOUND and first is not None:
        detail = None if first == DEFAULT_NOT_FOUND_BODY else _text(first)
        return NormalizedError(title=NOT_FOUND_TITLE, detail=detail)

    if exception is not None:
        # Exception messages reach the client unless the deployment opts out.
        detail = _text(exception) if expose_exception_detail else None
        return NormalizedError(title=UNKNOWN_ERROR_TITLE, detail=detail or None)

    if first is not None:
        return NormalizedError(detail=_text(first))

    return NormalizedError()


def error_hash(
    status_code: int | None,
    *,
    title: str | None = None,
    detail: str | None = None,
    source: Mapping[str, Any] | ErrorSource | None = None,
) -> ErrorObject:
    """Build one error object with a fresh id; absent inputs stay absent."""

    fields: dict[str, Any] = {"id": str(uuid.uuid4())}
    if title is not None:
        fields["title"] = title
    if detail is not None:
        fields["detail"] = detail
    if status_code is not None:
        fields["status"] = str(status_code)
    if source is not None:
        fields["source"] = source if isinstance(source, ErrorSource) else ErrorSource(**source)
    return ErrorObject(**fields)


def _escape_pointer_token(token: Any) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def _validation_source(location: Sequence[Any]) -> dict[str, str] | None:
    if not location:
        return None

    origin, *path = location
    if origin == "body":
        return {"pointer": "".join(f"/{_escape_pointer_token(part)}" for part in path)}
    if origin in {"query", "path"} and path:
        return {"parameter": str(path[0])}
    if origin == "header" and path:
        return {"header": str(path[0])}
    return None


def _validation_errors(exc: RequestValidationError) -> list[NormalizedError]:
    errors: list[NormalizedError] = []
    for issue in exc.errors():
        if issue.get("type") == "json_invalid":
            errors.append(NormalizedError(detail=MALFORMED_JSON_MESSAGE))
            continue
        errors.append(
            NormalizedError(
                title=VALIDATION_ERROR_TITLE,
                detail=str(issue.get("msg", "Invalid value")),
                source=_validation_source(issue.get("loc", ())),
            )
        )
    return errors or [NormalizedError(title=VALIDATION_ERROR_TITLE)]


def render_errors(
    request: Request,
    settings: JSONAPISettings,
    status_code: int,
    errors: Sequence[NormalizedError],
    headers: Mapping[str, str] | None = None,
) -> Response:
    """Build, log and render an error document for a failed request."""

    objects = [
        error_hash(status_code, title=error.title, detail=error.detail, source=error.source)
        for error in errors
    ]
    for error in objects:
        logger.error("%s: %s", settings.progname, error.model_dump(exclude_none=True))

    document = ErrorDocument(errors=objects)
    return ErrorDocumentResponse(
        status_code=status_code,
        content=document.model_dump(exclude_none=True),
        media_type=resolve_media_type(request.app, settings.media_type_alias),
        headers=dict(headers) if headers else None,
    )


def http_error_response(request: Request, settings: JSONAPISettings, exc: StarletteHTTPException) -> Response:
    error = normalized_error(exc.status_code, ResponseBody.from_value(exc.detail))
    return render_errors(request, settings, exc.status_code, [error], exc.headers)


def register_error_handlers(app: FastAPI, settings: JSONAPISettings) -> None:
    """Attach the JSON:API error handlers to a FastAPI app instance."""

    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        """Render framework and handler-raised HTTP errors as error documents."""

        if not status.HTTP_400_BAD_REQUEST <= exc.status_code < 600:
            return await default_http_exception_handler(request, exc)

        return http_error_response(request, settings, exc)

    async def jsonapi_error_handler(request: Request, exc: JSONAPIError) -> Response:
        """Explicit application errors are structured bodies and pass through unchanged."""

        error = normalized_error(exc.status_code, ResponseBody.from_value(exc.as_mapping()))
        return render_errors(request, settings, exc.status_code, [error])

    async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
        return render_errors(request, settings, status.HTTP_400_BAD_REQUEST, _validation_errors(exc))

    async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        """Any other fault is an "Unknown Error" carrying the exception message."""

        logger.error("%s: unhandled exception", settings.progname, exc_info=exc)
        error = normalized_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ResponseBody.from_value(None),
            exc,
            expose_exception_detail=settings.expose_exception_detail,
        )
        return render_errors(request, settings, status.HTTP_500_INTERNAL_SERVER_ERROR, [error])

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(JSONAPIError, jsonapi_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
