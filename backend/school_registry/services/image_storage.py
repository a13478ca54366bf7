"""
School Registry Backend: Image Storage Service
================================================

What:  Validates, names, stores and serves back uploaded school images.
How:   Checks extension + declared content type against a fixed allow-list,
       reads the upload in chunks up to the size ceiling, writes it with
       aiofiles under a generated collision-resistant name.
Who:   SchoolService (save/remove) and the image route (resolve).

Naming scheme:
    school-<epoch milliseconds>-<random 0..10^9><original extension>
    e.g. school-1718000000123-482913377.png

Directory layout:
    public/schoolImages/
    ├── school-1718000000123-482913377.png
    └── school-1718000000456-90211.jpg

The directory is local to the process host. Several instances only share
images when image_dir is a shared or mounted volume.
"""

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

import aiofiles
from starlette.datastructures import UploadFile
from starlette.requests import Request

from school_registry.config import Settings
from school_registry.exceptions import FileStorageError, FileTooLargeError, ValidationError

logger = logging.getLogger(__name__)

# URL prefix the stored files are served under
IMAGE_URL_PREFIX = "/schoolImages"

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif"}

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}

# Bytes pulled from the upload per read
CHUNK_SIZE = 64 * 1024

# Generated names tried before giving up on a write
NAME_ATTEMPTS = 5


class ImageStorage:
    """
    Manages the lifecycle of uploaded images.

    Lifecycle of an upload:
        1. SchoolService calls save() with the form's UploadFile
        2. No file / empty file part → None (image is optional)
        3. Extension + content type check
        4. Chunked read, aborted past max_size
        5. Write to image_dir under a generated name
        6. Relative URL /schoolImages/<name> returned for the record
        7. remove() deletes it again if the insert fails
    """

    def __init__(self, image_dir: str, max_size: int):
        self.image_dir = Path(image_dir).resolve()
        self.max_size = max_size
        self.image_dir.mkdir(parents=True, exist_ok=True)
        logger.info("ImageStorage initialized with image_dir=%s", self.image_dir)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageStorage":
        return cls(image_dir=settings.image_dir, max_size=settings.max_image_size)

    @property
    def max_size_mb(self) -> int:
        return max(self.max_size // (1024 * 1024), 1)

    def validate_type(self, filename: str, content_type: Optional[str]) -> str:
        """
        Check the upload against the allow-list.

        Both the extension and the declared content type must be allowed.
        Returns the original extension (case preserved) for the stored name.

        Raises:
            ValidationError("Only image files are allowed")
        """
        ext = Path(filename).suffix
        declared = (content_type or "").split(";")[0].strip().lower()

        if ext.lower() not in ALLOWED_EXTENSIONS or declared not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message="Only image files are allowed",
                field="image",
                context={
                    "extension": ext,
                    "content_type": declared,
                    "allowed": sorted(ALLOWED_EXTENSIONS),
                },
            )
        return ext

    async def read_limited(self, upload: UploadFile) -> bytes:
        """
        Read the upload, refusing anything larger than max_size.

        Reading stops as soon as one byte past the ceiling has been seen, so
        an oversized body is never held in memory in full.

        Raises:
            FileTooLargeError
        """
        chunks = []
        total = 0
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > self.max_size:
                raise FileTooLargeError(
                    max_size_mb=self.max_size_mb,
                    context={"limit_bytes": self.max_size},
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def generate_filename(self, extension: str) -> str:
        """school-<ms timestamp>-<random integer up to 10^9><extension>"""
        timestamp_ms = int(time.time() * 1000)
        suffix = random.randint(0, 10**9)
        return f"school-{timestamp_ms}-{suffix}{extension}"

    async def store(self, content: bytes, extension: str) -> str:
        """
        Write validated content to image_dir.

        Returns:
            Relative URL path stored in the record.

        Raises:
            FileStorageError on OS-level write failures.
        """
        try:
            self.image_dir.mkdir(parents=True, exist_ok=True)
            for _ in range(NAME_ATTEMPTS):
                filename = self.generate_filename(extension)
                path = self.image_dir / filename
                try:
                    # "xb" never replaces an image another upload already holds
                    async with aiofiles.open(path, "xb") as f:
                        await f.write(content)
                    break
                except FileExistsError:
                    logger.warning("Image name collision on %s, retrying", filename)
            else:
                raise FileExistsError(f"no free image name after {NAME_ATTEMPTS} attempts")
        except OSError as e:
            logger.error("Failed to store image in %s: %s", self.image_dir, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image",
                context={"image_dir": str(self.image_dir), "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", filename, len(content))
        return f"{IMAGE_URL_PREFIX}/{filename}"

    async def save(self, upload: Optional[UploadFile]) -> Optional[str]:
        """
        Full intake pipeline for the optional `image` form field.

        Returns:
            Relative URL path, or None when no file was submitted.
        """
        if upload is None or not upload.filename:
            return None

        try:
            ext = self.validate_type(upload.filename, upload.content_type)
            content = await self.read_limited(upload)
        finally:
            await upload.close()

        return await self.store(content, ext)

    def resolve(self, filename: str) -> Path:
        """
        Map a requested filename to a path inside image_dir.

        Raises:
            ValidationError when the name would escape the directory.
        """
        path = (self.image_dir / filename).resolve()
        if path.parent != self.image_dir:
            raise ValidationError(message="Invalid file path", field="filename")
        return path

    async def remove(self, relative_url: Optional[str]) -> None:
        """
        Delete a stored image by its relative URL.

        Best-effort: used after a failed insert so no file is left behind
        without a record. Failures are logged, not raised.
        """
        if not relative_url:
            return
        filename = relative_url.rsplit("/", 1)[-1]
        try:
            path = self.resolve(filename)
            if path.exists():
                os.remove(path)
                logger.info("Removed orphaned image: %s", filename)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to remove image %s: %s", filename, str(e))


def get_image_storage(request: Request) -> ImageStorage:
    """FastAPI dependency: the ImageStorage created by create_app()."""
    return request.app.state.image_storage
