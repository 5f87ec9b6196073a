import io
import base64
import logging
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from agri_assist.config import MAX_IMAGE_EDGE

logger = logging.getLogger(__name__)


def encode_image_bytes(image_bytes: bytes) -> Tuple[str, str]:
    """
    Prepare raw image bytes for an analysis request.

    Returns:
        (base64_data, mime_type)

    Raises:
        ValueError if the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image_format = image.format
    except UnidentifiedImageError as e:
        raise ValueError("Unsupported or corrupted image") from e

    mime_type = Image.MIME.get(image_format, "image/jpeg")

    if max(image.size) > MAX_IMAGE_EDGE:
        original_size = image.size
        image.thumbnail((MAX_IMAGE_EDGE, MAX_IMAGE_EDGE))
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=90)
        image_bytes = buffer.getvalue()
        mime_type = "image/jpeg"
        logger.info(f"Downscaled image {original_size} -> {image.size}")

    return base64.b64encode(image_bytes).decode("utf-8"), mime_type


def encode_image_file(path: Union[str, Path]) -> Tuple[str, str]:
    """Read an image file and return (base64_data, mime_type)"""
    try:
        image_bytes = Path(path).read_bytes()
    except OSError as e:
        raise ValueError(f"Cannot read image file: {path}") from e
    return encode_image_bytes(image_bytes)
