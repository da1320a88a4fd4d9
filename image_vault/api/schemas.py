from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

PrefixModeName = Literal["replace", "append", "prepend"]


# --- Requests ---
class ImageSourceModel(BaseModel):
    """Exactly one of ``url`` or ``data_base64``."""

    url: str | None = None
    data_base64: str | None = None

    @model_validator(mode="after")
    def _one_source(self) -> "ImageSourceModel":
        if (self.url is None) == (self.data_base64 is None):
            raise ValueError("Provide exactly one of url or data_base64")
        return self


class CreateImageRequest(ImageSourceModel):
    name: str
    folder: str
    prefix: str | None = None
    overwrite: bool = False
    metadata: dict[str, Any] | None = None


class ReplaceImageRequest(ImageSourceModel):
    metadata: dict[str, Any] | None = None
    overwrite: bool | None = None


class RenameRequest(BaseModel):
    public_id: str
    new_name: str


class RelocateRequest(BaseModel):
    public_id: str
    target_folder: str


class PrefixRequest(BaseModel):
    public_id: str
    mode: PrefixModeName
    prefix: str | None = None


class ParseUrlRequest(BaseModel):
    url: str


# --- Responses ---
class ImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    url: str
    secure_url: str
    width: int
    height: int
    format: str
    bytes: int
    metadata: dict[str, Any] = {}


class CreatedImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    url: str
    width: int
    height: int
    format: str
    size: int
    metadata: dict[str, Any] = {}


class ReplacedImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    secure_url: str
    metadata: dict[str, Any] = {}


class DeleteResponse(BaseModel):
    deleted: bool


class ImagePageResponse(BaseModel):
    items: list[ImageResponse]
    next_cursor: str | None = None


class UrlIdentityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    public_id: str
    folder: str
    file_name: str
    format: str


class SniffResponse(BaseModel):
    is_image: bool
    format: str | None = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    context: dict[str, Any] = {}
