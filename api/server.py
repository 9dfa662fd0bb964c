"""FastAPI server for the virtual try-on demo.

The browser drives three steps against this API:
- pick a product from the catalog
- upload a photo (base64 data URL)
- start the try-on and poll the state for progress, result or error
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from fitting_room import __version__
from fitting_room.catalog import AVAILABLE_SIZES, PRODUCTS, get_product
from fitting_room.config import PipelineConfig, load_config
from fitting_room.context import request_id_ctx
from fitting_room.errors import DecodeError
from fitting_room.logging_config import configure_logging
from fitting_room.models import ImagePayload, TryOnState
from fitting_room.pipeline import TryOnPipeline
from fitting_room.services import KeyStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    configure_logging(config.log_level, config.log_json)
    yield
    if _pipeline is not None:
        await _pipeline.fetcher.close()


app = FastAPI(
    title="Fitting Room API",
    description="Virtual try-on and size recommendation using Gemini",
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


@app.middleware("http")
async def request_context(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    token = request_id_ctx.set(rid)
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        return response
    finally:
        request_id_ctx.reset(token)


class KeyRequest(BaseModel):
    """Request body for selecting an API key."""
    api_key: str | None = None  # None = use the key from the environment


class SelectionRequest(BaseModel):
    product_id: str


class PhotoRequest(BaseModel):
    photo: str  # Base64 data URL


# Single-user demo state, created on first use
_config: PipelineConfig | None = None
_key_store: KeyStore | None = None
_pipeline: TryOnPipeline | None = None
_state: TryOnState | None = None


def get_config() -> PipelineConfig:
    global _config
    if _config is None:
        _config = load_config()  # Loads from .env automatically via pydantic-settings
    return _config


def get_key_store() -> KeyStore:
    global _key_store
    if _key_store is None:
        _key_store = KeyStore()
    return _key_store


def get_state() -> TryOnState:
    global _state
    if _state is None:
        _state = TryOnState()
    return _state


def get_pipeline() -> TryOnPipeline:
    """Get or create the pipeline instance."""
    global _pipeline
    if _pipeline is None:
        key_store = get_key_store()
        _pipeline = TryOnPipeline(
            get_config(),
            key_selector=key_store,
            key_provider=key_store,
        )
        _pipeline.add_listener(get_state().record_stage)
    return _pipeline


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Fitting Room API", "version": __version__}


@app.get("/health")
async def health():
    """Detailed health check."""
    has_key = await get_key_store().has_selected_api_key()
    return {
        "status": "ok" if has_key else "degraded",
        "api_key": "selected" if has_key else "missing",
    }


@app.get("/api/products")
async def list_products():
    return [product.model_dump() for product in PRODUCTS]


@app.get("/api/sizes")
async def list_sizes():
    return AVAILABLE_SIZES


@app.get("/api/key")
async def key_status():
    return {"has_key": await get_key_store().has_selected_api_key()}


@app.post("/api/key")
async def select_key(request: KeyRequest):
    """Select the API key used for the next backend calls."""
    key_store = get_key_store()
    await key_store.open_select_key(request.api_key)
    return {"has_key": await key_store.has_selected_api_key()}


@app.put("/api/selection")
async def select_product(request: SelectionRequest):
    product = get_product(request.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Unknown product: {request.product_id}")
    state = get_state()
    state.select_product(product)
    return state.snapshot()


@app.put("/api/photo")
async def upload_photo(request: PhotoRequest):
    try:
        image = ImagePayload.from_data_uri(request.photo)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=e.message)
    state = get_state()
    state.set_photo(image)
    return state.snapshot()


@app.delete("/api/photo")
async def remove_photo():
    state = get_state()
    state.clear_photo()
    return state.snapshot()


@app.get("/api/tryon")
async def tryon_state():
    return get_state().snapshot()


@app.post("/api/tryon")
async def start_tryon():
    """Run a try-on attempt and return the final state."""
    state = get_state()
    if state.is_loading:
        raise HTTPException(status_code=409, detail="A try-on is already running.")
    if not state.ready:
        raise HTTPException(status_code=400, detail="Select a product and upload a photo first.")

    pipeline = get_pipeline()
    state.begin_attempt()
    result = await pipeline.run(state.user_image, state.selected_product)

    if result is not None:
        state.record_result(result)
    elif pipeline.error is not None:
        state.record_error(pipeline.error)
    return state.snapshot()


@app.get("/api/tryon/download")
async def download_result():
    """The composite image as a file download."""
    result = get_state().result
    if result is None:
        raise HTTPException(status_code=404, detail="No try-on result available.")
    return Response(
        content=result.image.data,
        media_type=result.image.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@app.post("/api/reset")
async def reset():
    state = get_state()
    get_pipeline().reset()
    state.reset()
    return state.snapshot()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
