"""JSON:API error document schemas."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import ConfigDict


class ErrorSource(BaseModel):
    """Reference to the request input that caused an error."""

    model_config = ConfigDict(extra="allow")

    pointer: str | None = None
    parameter: str | None = None
    header: str | None = None


class ErrorObject(BaseModel):
    """Single JSON:API error object, one per error occurrence."""

    id: str
    title: str | None = None
    detail: str | None = None
    status: str | None = None
    source: ErrorSource | None = None


class ErrorDocument(BaseModel):
    """Top-level JSON:API error document."""

    errors: list[ErrorObject]
