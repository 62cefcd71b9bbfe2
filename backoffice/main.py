from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backoffice.api.routes_orders import router as orders_router
from backoffice.core.config import get_settings
from backoffice.core.errors import CommerceAPIError, DataIntegrityError, SubmissionError, ValidationError
from backoffice.core.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(_: Request, exc: DataIntegrityError):
    logger.error("order snapshot rejected: %s", exc)
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": "data_integrity"})


@app.exception_handler(ValidationError)
async def selection_validation_handler(_: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": "validation"})


@app.exception_handler(CommerceAPIError)
async def commerce_api_handler(_: Request, exc: CommerceAPIError):
    status_code = exc.status_code if exc.status_code is not None and 400 <= exc.status_code < 500 else 502
    error = "submission" if isinstance(exc, SubmissionError) else "commerce_api"
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": error})


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(orders_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backoffice.main:app", host=settings.api_host, port=settings.api_port)
