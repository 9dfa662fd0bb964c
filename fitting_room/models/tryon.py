"""Request, result and stage models for a single try-on attempt."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .payload import ImagePayload
from .product import Product


class SizeCode(str, Enum):
    """Recommended size. Declaration order is the scan order used when parsing."""
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


DEFAULT_SIZE = SizeCode.M


class Stage(str, Enum):
    IDLE = "idle"
    FETCHING_PRODUCT = "fetching_product"
    ESTIMATING_SIZE = "estimating_size"
    RENDERING = "rendering"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.SUCCEEDED, Stage.FAILED)

    @property
    def is_running(self) -> bool:
        return self in (Stage.FETCHING_PRODUCT, Stage.ESTIMATING_SIZE, Stage.RENDERING)


STAGE_LABELS = {
    Stage.IDLE: "",
    Stage.FETCHING_PRODUCT: "Loading the outfit...",
    Stage.ESTIMATING_SIZE: "Analysing proportions...",
    Stage.RENDERING: "Rendering photo realism...",
    Stage.SUCCEEDED: "Your look is ready.",
    Stage.FAILED: "Processing failed.",
}


class TryOnRequest(BaseModel):
    """Input bundle for one attempt."""

    model_config = ConfigDict(frozen=True)

    user_image: ImagePayload
    product: Product


class TryOnResult(BaseModel):
    """Composite image plus recommended size."""

    model_config = ConfigDict(frozen=True)

    image: ImagePayload
    size: SizeCode
    filename: str = "my-better-future-look.jpg"

    @property
    def data_uri(self) -> str:
        return self.image.to_data_uri()
