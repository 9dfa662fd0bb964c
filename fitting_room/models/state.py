"""Application-level state for the try-on screens."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from ..errors import ErrorKind, PipelineError
from .payload import ImagePayload
from .product import Product
from .tryon import SizeCode, Stage, TryOnResult


class TryOnState(BaseModel):
    """Everything the browser needs to render the current step.

    Steps: 1 select a product, 2 upload a photo, 3 loading/result/error.
    """

    step: int = 1
    user_image: ImagePayload | None = None
    selected_product: Product | None = None

    stage: Stage = Stage.IDLE
    result: TryOnResult | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    in_flight: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @computed_field
    @property
    def is_loading(self) -> bool:
        return self.in_flight or self.stage.is_running

    @computed_field
    @property
    def recommended_size(self) -> SizeCode | None:
        return self.result.size if self.result else None

    @property
    def ready(self) -> bool:
        """Both inputs present, so an attempt can start."""
        return self.user_image is not None and self.selected_product is not None

    def select_product(self, product: Product) -> None:
        self.selected_product = product
        self.step = max(self.step, 2)

    def set_photo(self, image: ImagePayload) -> None:
        self.user_image = image
        self.error_kind = None
        self.error_message = None

    def clear_photo(self) -> None:
        self.user_image = None

    def begin_attempt(self) -> None:
        self.step = 3
        self.in_flight = True
        self.stage = Stage.IDLE
        self.result = None
        self.error_kind = None
        self.error_message = None
        self.started_at = datetime.now()
        self.completed_at = None

    def record_stage(self, stage: Stage) -> None:
        self.stage = stage

    def record_result(self, result: TryOnResult) -> None:
        self.result = result
        self.stage = Stage.SUCCEEDED
        self.in_flight = False
        self.completed_at = datetime.now()

    def record_error(self, error: PipelineError) -> None:
        self.result = None
        self.error_kind = error.kind
        self.error_message = error.message
        self.stage = Stage.FAILED
        self.in_flight = False
        self.completed_at = datetime.now()

    def reset(self) -> None:
        """Back to product selection with nothing retained."""
        self.step = 1
        self.user_image = None
        self.selected_product = None
        self.stage = Stage.IDLE
        self.result = None
        self.error_kind = None
        self.error_message = None
        self.started_at = None
        self.in_flight = False
        self.completed_at = None

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view with images as data URIs."""
        return {
            "step": self.step,
            "stage": self.stage.value,
            "stage_label": self.stage.label,
            "is_loading": self.is_loading,
            "has_photo": self.user_image is not None,
            "selected_product": (
                self.selected_product.model_dump() if self.selected_product else None
            ),
            "recommended_size": self.recommended_size.value if self.recommended_size else None,
            "result_image": self.result.data_uri if self.result else None,
            "error": (
                {"kind": self.error_kind.value, "message": self.error_message}
                if self.error_kind
                else None
            ),
        }
