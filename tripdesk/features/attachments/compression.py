from __future__ import annotations

import io
import logging
from datetime import datetime, timezone

from PIL import Image, ImageOps, UnidentifiedImageError

from .schemas import FileBlob

logger = logging.getLogger(__name__)

_JPEG_MIME = "image/jpeg"


def _encode_jpeg(data: bytes, *, max_width: int, quality: int) -> bytes:
    with Image.open(io.BytesIO(data)) as img:
        oriented = ImageOps.exif_transpose(img)
        width, height = oriented.size
        if width > max_width:
            new_height = max(1, round(height * max_width / width))
            oriented = oriented.resize((max_width, new_height), Image.Resampling.LANCZOS)
        rgb = oriented.convert("RGB") if oriented.mode != "RGB" else oriented

        output = io.BytesIO()
        rgb.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()


def compress_image(item: FileBlob, *, max_width: int, quality: int) -> FileBlob:
    """Re-encode an image as a width-capped JPEG when that makes it smaller.

    Anything that is not an image, cannot be decoded, or does not shrink is
    returned as the very same object.
    """
    if not item.is_image:
        return item

    try:
        encoded = _encode_jpeg(item.data, max_width=max_width, quality=quality)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("Could not compress image %s, keeping original: %s", item.name, exc)
        return item

    if len(encoded) >= item.size:
        return item

    logger.debug("Compressed %s from %d to %d bytes.", item.name, item.size, len(encoded))
    return FileBlob(
        name=item.name,
        content_type=_JPEG_MIME,
        data=encoded,
        last_modified=datetime.now(timezone.utc),
    )
