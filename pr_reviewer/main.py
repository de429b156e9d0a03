"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pr_reviewer import __version__
from pr_reviewer.api import auth, github, reviews
from pr_reviewer.api.dependencies import get_session_store
from pr_reviewer.config import settings
from pr_reviewer.failures import Failure
from pr_reviewer.middleware.logging import RequestLoggingMiddleware
from pr_reviewer.models.error import ErrorKind
from pr_reviewer.services.error_classifier import SUGGESTIONS, classify, format_for_api
from pr_reviewer.services.review_pipeline import GenerationError, ModelGateError
from pr_reviewer.utils.logging import get_logger, log_error_with_context, setup_logging

logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.AUTH_FAILURE: 401,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.RESOURCE_NOT_FOUND: 404,
    ErrorKind.INVALID_REQUEST: 422,
    ErrorKind.GENERIC_UPSTREAM_ERROR: 502,
    ErrorKind.INFERENCE_SERVICE_DOWN: 503,
    ErrorKind.ORCHESTRATION_SERVER_DOWN: 503,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.UNKNOWN_ERROR: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the session store on startup and release it on shutdown."""
    setup_logging(settings.log_level)
    logger.info("Starting AI GitHub PR Reviewer API")

    store = get_session_store()
    await store.initialize()
    logger.info(f"Session store initialized: {type(store).__name__}")

    yield

    logger.info("Shutting down AI GitHub PR Reviewer API")
    await store.close()


app = FastAPI(
    title="AI GitHub PR Reviewer",
    description="Reviews GitHub pull requests with a local Ollama model",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(Failure)
async def failure_handler(request: Request, exc: Failure) -> JSONResponse:
    classified = classify(exc)
    logger.warning(
        f"{request.method} {request.url.path} failed: {classified.kind.value}",
        extra={"error": exc.message},
    )
    return JSONResponse(status_code=STATUS_BY_KIND[classified.kind], content=format_for_api(classified))


@app.exception_handler(ModelGateError)
async def model_gate_handler(request: Request, exc: ModelGateError) -> JSONResponse:
    content = {"error": exc.message, "type": exc.kind.value, "suggestion": exc.suggestion}
    if exc.available_models is not None:
        content["availableModels"] = exc.available_models
    return JSONResponse(status_code=503, content=content)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": f"AI analysis failed: {exc.message}",
            "type": ErrorKind.UNKNOWN_ERROR.value,
            "suggestion": SUGGESTIONS[ErrorKind.UNKNOWN_ERROR],
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error_with_context(logger, f"Unhandled error on {request.url.path}", exc)
    return JSONResponse(status_code=500, content=format_for_api(classify(exc)))


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {
        "status": "OK",
        "message": "AI GitHub PR Reviewer is running",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "AI GitHub PR Reviewer API",
        "version": __version__,
        "docs": "/docs",
    }


# Include API routers
app.include_router(auth.router)
app.include_router(github.router)
app.include_router(reviews.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
