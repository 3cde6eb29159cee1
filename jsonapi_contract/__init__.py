"""JSON:API content negotiation and error documents for FastAPI."""

from jsonapi_contract.core.errors import JSONAPIError
from jsonapi_contract.core.errors import NotFoundError
from jsonapi_contract.core.install import JSONAPIRouter
from jsonapi_contract.core.install import install_jsonapi
from jsonapi_contract.core.media_type import MEDIA_TYPE
from jsonapi_contract.core.request_body import deserialize_request_body

__all__ = [
    "MEDIA_TYPE",
    "JSONAPIError",
    "JSONAPIRouter",
    "NotFoundError",
    "deserialize_request_body",
    "install_jsonapi",
]
