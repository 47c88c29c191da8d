import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardsmith.config import get_settings
from cardsmith.db.factory import make_database
from cardsmith.exceptions import CardsmithError
from cardsmith.middlewares import log_error, log_requests
from cardsmith.routers import drafts, generation, ping, study

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan for the API.
    """
    logger.info("Starting cardsmith API...")

    settings = get_settings()
    app.state.settings = settings

    database = make_database()
    app.state.database = database
    logger.info("Database connected")

    logger.info("API ready")
    yield

    database.teardown()
    logger.info("API shutdown complete")


app = FastAPI(
    title="cardsmith",
    description="Flashcards with AI drafting and spaced repetition study sessions.",
    version=get_settings().app_version,
    lifespan=lifespan,
)


def _error_response(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@app.exception_handler(CardsmithError)
async def cardsmith_error_handler(request: Request, exc: CardsmithError):
    if exc.status_code >= 500:
        log_error(f"{exc.code}: {exc.message}", request.method, request.url.path)
    return _error_response(exc.status_code, jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "message": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return _error_response(
        400,
        {"code": "VALIDATION_ERROR", "message": "Invalid request", "details": jsonable_encoder(details)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_error(repr(exc), request.method, request.url.path)
    return _error_response(
        500, {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
    )


app.middleware("http")(log_requests)


app.include_router(ping.router, prefix="/api/v1")
app.include_router(generation.router, prefix="/api/v1")
app.include_router(drafts.router, prefix="/api/v1")
app.include_router(study.router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(app, port=8000, host="0.0.0.0")
