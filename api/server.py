"""FastAPI server for textile virtual try-on.

Try-on requests carry:
- session_id: query parameter identifying the anonymous user profile
- garment_id: the garment to try on
- user_photo_id: one of the profile's uploaded photos
- ai_model: optional model code (see /api/tryon/models)
- custom_prompt, style: optional extra prompt instructions
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Generic, TypeVar

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from textile_tryon import __version__
from textile_tryon.agents.prompt_generator import MAX_CUSTOM_PROMPT_LENGTH
from textile_tryon.config import load_config
from textile_tryon.errors import TryOnError
from textile_tryon.models import Page, TryOnOutcome, TryOnStatus
from textile_tryon.pipeline import TryOnPipeline
from textile_tryon.repository import InMemoryRepository, load_seed_data


config = load_config()  # Loads from .env automatically via pydantic-settings

logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Error code -> HTTP status for failed requests
ERROR_STATUS = {
    "NOT_FOUND": 404,
    "FORBIDDEN": 403,
    "VALIDATION_ERROR": 400,
    "REMOTE_SERVICE_ERROR": 502,
    "IMAGE_FETCH_ERROR": 502,
    "STORAGE_ERROR": 500,
    "INTERNAL_ERROR": 500,
}


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for every JSON response."""
    success: bool
    message: str | None = None
    data: T | None = None
    error_code: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class TryOnRequest(BaseModel):
    """Request body for try-on generation."""
    garment_id: int
    user_photo_id: int
    ai_model: str | None = None  # None = configured default
    custom_prompt: str | None = Field(default=None, max_length=MAX_CUSTOM_PROMPT_LENGTH)
    style: str | None = Field(default=None, max_length=100)


class ModelInfo(BaseModel):
    code: str
    display_name: str


# Initialize pipeline (will be done on first request)
_pipeline: TryOnPipeline | None = None
_repository: InMemoryRepository | None = None


def get_repository() -> InMemoryRepository:
    """Get or create the repository, seeding it when a seed file is configured."""
    global _repository
    if _repository is None:
        _repository = InMemoryRepository()
        if config.seed_file is not None:
            load_seed_data(_repository, config.seed_file)
    return _repository


def get_pipeline() -> TryOnPipeline:
    """Get or create the pipeline instance."""
    global _pipeline
    if _pipeline is None:
        _pipeline = TryOnPipeline(config, get_repository())
    return _pipeline


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _pipeline is not None:
        await _pipeline.close()


app = FastAPI(
    title="Textile Try-On API",
    description="Virtual try-on for sarees, vestis and other garments using Gemini",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Serve locally stored try-on images
if config.storage.backend == "local":
    config.storage.local_path.mkdir(parents=True, exist_ok=True)
    app.mount("/files", StaticFiles(directory=config.storage.local_path), name="files")


@app.exception_handler(TryOnError)
async def tryon_error_handler(request: Request, exc: TryOnError):
    body = ApiResponse[None](success=False, message=exc.message, error_code=exc.code)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.code, 500),
        content=body.model_dump(mode="json"),
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Textile Try-On API", "version": __version__}


@app.get("/health")
async def health():
    """Detailed health check."""
    pipeline = get_pipeline()
    gemini_ok = await pipeline.gemini.check_connection()

    return {
        "status": "ok" if gemini_ok else "degraded",
        "gemini": "connected" if gemini_ok else "disconnected",
        "storage": config.storage.backend,
    }


@app.post("/api/tryon/generate", response_model=ApiResponse[TryOnOutcome])
async def generate_tryon(request: TryOnRequest, session_id: str = Query(..., min_length=1)):
    """Generate a virtual try-on image.

    Returns 200 for SUCCESS and DEGRADED outcomes. FAILED outcomes are
    returned with the status matching their error code, the outcome still
    in ``data``.
    """
    pipeline = get_pipeline()

    outcome = await pipeline.generate(
        session_id=session_id,
        garment_id=request.garment_id,
        user_photo_id=request.user_photo_id,
        model=request.ai_model,
        custom_prompt=request.custom_prompt,
        style=request.style,
    )

    if outcome.status is TryOnStatus.FAILED:
        body = ApiResponse[TryOnOutcome](
            success=False,
            message=f"Try-on generation failed: {outcome.error_message}",
            data=outcome,
            error_code=outcome.error_code,
        )
        return JSONResponse(
            status_code=ERROR_STATUS.get(outcome.error_code, 500),
            content=body.model_dump(mode="json"),
        )

    message = "Try-on generated successfully"
    if outcome.status is TryOnStatus.DEGRADED:
        message = "Try-on generation failed; returning placeholder image"
    return ApiResponse[TryOnOutcome](success=True, message=message, data=outcome)


@app.get("/api/tryon/results", response_model=ApiResponse[Page[TryOnOutcome]])
async def list_tryon_results(
    session_id: str = Query(..., min_length=1),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
):
    """List the session's try-on results, newest first."""
    results = get_pipeline().list_results(session_id, page=page, size=size)
    return ApiResponse[Page[TryOnOutcome]](
        success=True, message="Try-on results retrieved successfully", data=results
    )


@app.delete("/api/tryon/results/{result_id}", response_model=ApiResponse[None])
async def delete_tryon_result(result_id: int, session_id: str = Query(..., min_length=1)):
    """Delete one of the session's try-on results."""
    await get_pipeline().delete_result(session_id, result_id)
    return ApiResponse[None](success=True, message="Try-on result deleted successfully")


@app.get("/api/tryon/models", response_model=ApiResponse[list[ModelInfo]])
async def available_models():
    """List the supported AI model codes."""
    models = [
        ModelInfo(code=model.value, display_name=model.display_name)
        for model in get_pipeline().available_models()
    ]
    return ApiResponse[list[ModelInfo]](success=True, message="Available AI models retrieved", data=models)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
