"""Image encoding shared by the screen, camera and photos capabilities."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from garden_bridge.exceptions import CommandError

if TYPE_CHECKING:
    from PIL import Image

# format name -> (Pillow format, file extension, mime type)
IMAGE_FORMATS: dict[str, tuple[str, str, str]] = {
    "png": ("PNG", "png", "image/png"),
    "jpeg": ("JPEG", "jpg", "image/jpeg"),
    "tiff": ("TIFF", "tiff", "image/tiff"),
}


def normalize_format(fmt: str) -> str:
    fmt = fmt.lower()
    return "jpeg" if fmt == "jpg" else fmt


def encode_image(image: Image.Image, fmt: str, quality: float = 0.9) -> bytes:
    """Encode *image* as *fmt*; ``quality`` (0.0-1.0) applies to JPEG only.

    Raises:
        CommandError: ``ENCODING_FAILED`` when Pillow cannot write the image.
    """
    fmt = normalize_format(fmt)
    pil_format, _, _ = IMAGE_FORMATS[fmt]
    buf = io.BytesIO()
    try:
        if pil_format == "JPEG":
            image.convert("RGB").save(buf, format="JPEG", quality=max(1, round(quality * 100)))
        else:
            image.save(buf, format=pil_format)
    except (OSError, ValueError) as exc:
        raise CommandError("ENCODING_FAILED", f"Failed to encode {fmt} image: {exc}") from exc
    return buf.getvalue()
