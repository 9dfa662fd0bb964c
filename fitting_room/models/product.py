"""Catalog product model."""

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """A catalog entry the user can try on."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = Field(description="Shop text, passed to the try-on prompt after cleaning")
    image_url: str = Field(description="Remote URL or data: URI of the reference image")
    fit_hint: str | None = Field(default=None, description="e.g. 'tight and athletic'")

    @property
    def has_embedded_image(self) -> bool:
        return self.image_url.startswith("data:")
