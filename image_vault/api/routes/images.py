"""
Images API routes.

Thin HTTP layer over ImageService. Errors raised by the service are mapped
to status codes by the exception handler registered in image_vault.api.main.
"""

import base64
import binascii

from fastapi import APIRouter, Depends, Request

from image_vault.api.deps import get_image_rules, get_image_service
from image_vault.api.schemas import (
    CreatedImageResponse,
    CreateImageRequest,
    DeleteResponse,
    ImagePageResponse,
    ImageResponse,
    ImageSourceModel,
    ParseUrlRequest,
    PrefixRequest,
    RelocateRequest,
    RenameRequest,
    ReplacedImageResponse,
    ReplaceImageRequest,
    SniffResponse,
    UrlIdentityResponse,
)
from image_vault.components.images import (
    BufferSource,
    ChangePrefixInput,
    CreateImageInput,
    ImageService,
    ImageSource,
    ListImagesInput,
    RelocateImageInput,
    RenameImageInput,
    ReplaceImageInput,
    UrlSource,
    run_parse_url,
)
from image_vault.core.errors import ValidationError
from image_vault.domain.sniff import detect_image_format
from image_vault.rules.models import ImageRules

router = APIRouter()


def _to_source(body: ImageSourceModel) -> ImageSource:
    if body.url is not None:
        return UrlSource(url=body.url)
    try:
        data = base64.b64decode(body.data_base64 or "", validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("The image buffer is not valid base64.") from e
    return BufferSource(data=data)


@router.post("", response_model=CreatedImageResponse, status_code=201)
async def create_image(
    body: CreateImageRequest,
    service: ImageService = Depends(get_image_service),
) -> CreatedImageResponse:
    """Upload a new image."""
    inp = CreateImageInput(
        source=_to_source(body),
        name=body.name,
        folder=body.folder,
        prefix=body.prefix,
        overwrite=body.overwrite,
        metadata=body.metadata,
    )
    created = await service.create(inp)
    return CreatedImageResponse.model_validate(created)


@router.get("", response_model=ImagePageResponse)
async def list_images(
    folder: str,
    recursive: bool = False,
    limit: int | None = None,
    cursor: str | None = None,
    service: ImageService = Depends(get_image_service),
) -> ImagePageResponse:
    """List one page of a folder."""
    page = await service.list(
        ListImagesInput(folder=folder, recursive=recursive, limit=limit, cursor=cursor)
    )
    return ImagePageResponse(
        items=[ImageResponse.model_validate(item) for item in page.items],
        next_cursor=page.next_cursor,
    )


@router.get("/by-id/{public_id:path}", response_model=ImageResponse)
async def get_image(
    public_id: str,
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    """Fetch one image straight from the store."""
    return ImageResponse.model_validate(await service.get(public_id))


@router.put("/by-id/{public_id:path}", response_model=ReplacedImageResponse)
async def replace_image(
    public_id: str,
    body: ReplaceImageRequest,
    service: ImageService = Depends(get_image_service),
) -> ReplacedImageResponse:
    """Replace the bytes of an image, keeping its public id."""
    inp = ReplaceImageInput(
        public_id=public_id,
        source=_to_source(body),
        metadata=body.metadata,
        overwrite=body.overwrite,
    )
    return ReplacedImageResponse.model_validate(await service.replace(inp))


@router.delete("/by-id/{public_id:path}", response_model=DeleteResponse)
async def delete_image(
    public_id: str,
    service: ImageService = Depends(get_image_service),
) -> DeleteResponse:
    result = await service.delete(public_id)
    return DeleteResponse(deleted=result.deleted)


@router.post("/rename", response_model=ImageResponse)
async def rename_image(
    body: RenameRequest,
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    view = await service.rename(RenameImageInput(public_id=body.public_id, new_name=body.new_name))
    return ImageResponse.model_validate(view)


@router.post("/relocate", response_model=ImageResponse)
async def relocate_image(
    body: RelocateRequest,
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    view = await service.relocate(
        RelocateImageInput(public_id=body.public_id, target_folder=body.target_folder)
    )
    return ImageResponse.model_validate(view)


@router.post("/prefix", response_model=ImageResponse)
async def change_prefix(
    body: PrefixRequest,
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    view = await service.change_prefix(
        ChangePrefixInput(public_id=body.public_id, mode=body.mode, prefix=body.prefix)
    )
    return ImageResponse.model_validate(view)


@router.post("/parse-url", response_model=UrlIdentityResponse)
def parse_url(
    body: ParseUrlRequest,
    rules: ImageRules = Depends(get_image_rules),
) -> UrlIdentityResponse:
    """Recover the public id of a delivery URL. Makes no remote call."""
    return UrlIdentityResponse.model_validate(run_parse_url(body.url, rules=rules))


@router.post("/sniff", response_model=SniffResponse)
async def sniff(request: Request) -> SniffResponse:
    """Classify the raw request body by its magic bytes."""
    data = await request.body()
    file_format = detect_image_format(data)
    return SniffResponse(is_image=file_format is not None, format=file_format)
