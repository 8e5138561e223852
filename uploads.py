import os
import random
import time
from pathlib import Path
from typing import Optional

import structlog
from PIL import Image, UnidentifiedImageError
from starlette.datastructures import UploadFile

from config import Settings
from errors import UploadError

logger = structlog.get_logger(__name__)

URL_PREFIX = "/uploads"

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": {".jpg", ".jpeg"},
    "image/png": {".png"},
    "image/gif": {".gif"},
    "image/webp": {".webp"},
}

CHUNK_SIZE = 64 * 1024


def has_file(upload) -> bool:
    """Browsers submit an empty part with no filename when nothing was chosen."""
    return isinstance(upload, UploadFile) and bool(upload.filename)


def _unique_name(original: str, content_type: str) -> str:
    ext = Path(original).suffix.lower()
    if ext not in ALLOWED_CONTENT_TYPES[content_type]:
        ext = sorted(ALLOWED_CONTENT_TYPES[content_type])[0]
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"photo-{suffix}{ext}"


async def store_upload(upload: UploadFile, settings: Settings) -> str:
    """
    Write an uploaded image into the upload directory.

    Content type, size and the bytes themselves are checked here, on the server.
    Anything that fails is removed from disk before UploadError is raised.
    Returns the public path, e.g. "/uploads/photo-1700000000000-42.png".
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        logger.info("upload_rejected", reason="content_type", content_type=content_type)
        raise UploadError(
            "Invalid file type. Please upload a JPEG, PNG, GIF, or WebP image."
        )

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    name = _unique_name(upload.filename or "", content_type)
    target = settings.upload_dir / name

    written = 0
    try:
        with open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise UploadError(
                        "File is too large. Maximum file size is "
                        f"{settings.max_upload_bytes // (1024 * 1024)}MB."
                    )
                out.write(chunk)

        if written == 0:
            raise UploadError("Uploaded file is empty.")

        try:
            with Image.open(target) as image:
                image.verify()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
        ) as exc:
            raise UploadError("Uploaded file is not a valid image.") from exc
    except UploadError as exc:
        target.unlink(missing_ok=True)
        logger.info("upload_rejected", reason=exc.detail, filename=upload.filename)
        raise
    except Exception:
        target.unlink(missing_ok=True)
        logger.exception("upload_failed", filename=upload.filename)
        raise

    logger.info("upload_stored", path=name, size=written)
    return f"{URL_PREFIX}/{name}"


def discard_upload(public_path: Optional[str], settings: Settings) -> None:
    """Delete a previously stored upload; unknown or foreign paths are ignored."""
    if not public_path or not public_path.startswith(URL_PREFIX + "/"):
        return
    name = os.path.basename(public_path)
    target = settings.upload_dir / name
    if target.exists():
        target.unlink()
        logger.info("upload_discarded", path=name)
