"""
Image upload APIs for event, reward and avatar pictures.
"""
from fastapi import APIRouter, Depends, HTTPException, status, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from auth.dependencies import get_current_admin, get_data_service
from core.entities import ImageDeleteResult, ImageUploadResult, UploadedImage, User
from core.logger import logger
from core.validators import validate_file_size
from services.data_service import DataService
import config


router = APIRouter(prefix="/api/images", tags=["images"])

READ_CHUNK_SIZE = 1024 * 1024


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read an upload, stopping as soon as it exceeds max_bytes.

    Raises:
        HTTPException: 413 if the file is larger than max_bytes
    """
    too_large = HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=validate_file_size(max_bytes + 1, max_bytes)[1],
    )
    if file.size is not None and file.size > max_bytes:
        raise too_large

    chunks = []
    total = 0
    while True:
        chunk = await file.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise too_large
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("", response_model=ImageUploadResult, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    folder: str = Form(config.DEFAULT_IMAGE_FOLDER),
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    """
    Upload an image (JPEG, PNG, GIF or WebP, up to MAX_IMAGE_SIZE_MB).
    Returns its public URL and the storage key used to delete it later.
    """
    content = await read_upload(file, config.MAX_IMAGE_SIZE_MB * 1024 * 1024)
    image = UploadedImage(
        filename=file.filename or "",
        content_type=file.content_type,
        content=content,
    )
    result = await run_in_threadpool(data_service.upload_image, image, folder)
    if not result.success:
        logger.warning(f"Image upload rejected ({file.filename}): {result.error}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error or "Upload failed")
    return result


@router.delete("/{image_id:path}", response_model=ImageDeleteResult)
def delete_image(
    image_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    result = data_service.delete_image(image_id)
    if not result.success:
        code = status.HTTP_404_NOT_FOUND if result.error == "Image not found" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=result.error or "Delete failed")
    return result
