"""FastAPI application entrypoint for a JSON:API service."""

from fastapi import FastAPI

from jsonapi_contract.core.config import JSONAPISettings
from jsonapi_contract.core.install import install_jsonapi


def create_app(settings: JSONAPISettings | None = None) -> FastAPI:
    """Build a FastAPI app that speaks only the JSON:API media type."""

    app = FastAPI(title="jsonapi-contract")
    install_jsonapi(app, settings)

    @app.get("/health")
    def health() -> dict[str, dict[str, str]]:
        """Health check endpoint answering a JSON:API meta document."""
        return {"meta": {"status": "ok"}}

    return app


app = create_app()
