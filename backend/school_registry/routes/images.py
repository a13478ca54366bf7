"""
School Registry Backend: Image File Route
===========================================

What:  GET /schoolImages/{filename} serves stored school images.
How:   Resolves the name inside the image directory and streams the file
       with a content type guessed from its extension.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from school_registry.exceptions import NotFoundError
from school_registry.services.image_storage import (
    IMAGE_URL_PREFIX,
    ImageStorage,
    get_image_storage,
)

router = APIRouter(prefix=IMAGE_URL_PREFIX, tags=["Images"])


@router.get(
    "/{filename}",
    summary="Serve an uploaded school image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found"},
    },
)
async def serve_image(
    filename: str,
    images: ImageStorage = Depends(get_image_storage),
) -> FileResponse:
    path = images.resolve(filename)

    if not path.is_file():
        raise NotFoundError(message="File not found", context={"filename": filename})

    return FileResponse(path=str(path))
