"""
Upload images are passed to the model as-is unless they exceed the size
limit, in which case they are scaled down (aspect ratio kept) so the
longest side fits ``max_image_dimension`` and re-encoded.
"""

import io

from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..core.config import settings
from ..core.errors import CorruptedFileError

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff")


def prepare_image(
    content: bytes,
    filename: str = "image",
    max_bytes: int | None = None,
    max_dimension: int | None = None,
) -> tuple[bytes, str]:
    """
    Return ``(image bytes, media type)`` ready to send to the model.

    Raises:
        CorruptedFileError: if Pillow cannot identify the image.
    """
    max_bytes = max_bytes or settings.max_image_bytes
    max_dimension = max_dimension or settings.max_image_dimension

    try:
        image = Image.open(io.BytesIO(content))
        image_format = image.format or "PNG"
    except UnidentifiedImageError as e:
        raise CorruptedFileError(filename, str(e)) from e

    media_type = Image.MIME.get(image_format, "image/png")
    if len(content) <= max_bytes:
        return content, media_type

    image.thumbnail((max_dimension, max_dimension))
    if image_format == "JPEG":
        save_kwargs = {"quality": 80}
    else:
        image_format, media_type, save_kwargs = "PNG", "image/png", {"optimize": True}
    if image_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **save_kwargs)
    optimized = buffer.getvalue()
    logger.info(
        "Downscaled oversized image",
        filename=filename,
        original_bytes=len(content),
        optimized_bytes=len(optimized),
        size=image.size,
    )
    return optimized, media_type
