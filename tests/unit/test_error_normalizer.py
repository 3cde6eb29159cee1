"""Unit tests for deriving title and detail from failed responses."""

from __future__ import annotations

from jsonapi_contract.core.errors import BodyKind
from jsonapi_contract.core.errors import NormalizedError
from jsonapi_contract.core.errors import ResponseBody
from jsonapi_contract.core.errors import normalized_error


def test_body_shapes_are_tagged_explicitly() -> None:
    assert ResponseBody.from_value({"title": "x"}).kind is BodyKind.STRUCTURED
    assert ResponseBody.from_value(["x"]).kind is BodyKind.SEQUENCE
    assert ResponseBody.from_value("x").kind is BodyKind.SCALAR
    assert ResponseBody.from_value(None).kind is BodyKind.EMPTY
    assert ResponseBody.from_value("").kind is BodyKind.EMPTY
    assert ResponseBody.from_value([]).kind is BodyKind.EMPTY


def test_structured_body_wins_over_every_other_branch() -> None:
    body = ResponseBody.from_value({"title": "Conflict", "detail": "Name taken", "source": {"pointer": "/data"}})

    error = normalized_error(404, body, ZeroDivisionError("division by zero"))

    assert error == NormalizedError(title="Conflict", detail="Name taken", source={"pointer": "/data"})


def test_default_not_found_body_has_no_detail() -> None:
    error = normalized_error(404, ResponseBody.from_value("Not Found"))

    assert error == NormalizedError(title="Not Found", detail=None)


def test_custom_not_found_body_becomes_detail() -> None:
    error = normalized_error(404, ResponseBody.from_value("no such widget"))

    assert error == NormalizedError(title="Not Found", detail="no such widget")


def test_not_found_uses_first_element_of_sequence_body() -> None:
    error = normalized_error(404, ResponseBody.from_value(["no such widget", "ignored"]))

    assert error.detail == "no such widget"


def test_not_found_beats_exception_when_body_present() -> None:
    error = normalized_error(404, ResponseBody.from_value("gone"), RuntimeError("boom"))

    assert error.title == "Not Found"
    assert error.detail == "gone"


def test_empty_not_found_falls_through_to_exception() -> None:
    error = normalized_error(404, ResponseBody.from_value(None), RuntimeError("boom"))

    assert error == NormalizedError(title="Unknown Error", detail="boom")


def test_exception_message_becomes_detail() -> None:
    error = normalized_error(500, ResponseBody.from_value(None), ZeroDivisionError("division by zero"))

    assert error == NormalizedError(title="Unknown Error", detail="division by zero")


def test_exception_message_can_be_withheld() -> None:
    error = normalized_error(
        500,
        ResponseBody.from_value(None),
        ZeroDivisionError("division by zero"),
        expose_exception_detail=False,
    )

    assert error == NormalizedError(title="Unknown Error", detail=None)


def test_plain_body_becomes_detail_without_title() -> None:
    error = normalized_error(400, ResponseBody.from_value("Malformed JSON in the request body"))

    assert error == NormalizedError(title=None, detail="Malformed JSON in the request body")


def test_non_string_body_is_coerced_to_text() -> None:
    assert normalized_error(409, ResponseBody.from_value([42])).detail == "42"


def test_empty_body_without_exception_has_no_title_or_detail() -> None:
    assert normalized_error(503, ResponseBody.from_value(None)) == NormalizedError()
