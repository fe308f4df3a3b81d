from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.models.errors import DataIntegrityError, EmbeddingError, TransientInfraError


def register_error_handlers(application: FastAPI) -> None:
    """Map pipeline errors to HTTP status codes."""

    @application.exception_handler(ValueError)
    async def _bad_request(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @application.exception_handler(DataIntegrityError)
    async def _conflict(request: Request, exc: DataIntegrityError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @application.exception_handler(EmbeddingError)
    async def _bad_gateway(request: Request, exc: EmbeddingError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @application.exception_handler(TransientInfraError)
    async def _unavailable(request: Request, exc: TransientInfraError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})
