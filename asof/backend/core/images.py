"""
Image Processing.

Pillow helpers for uploaded images. All functions are synchronous and
CPU-bound; call them through run_blocking under the
"image_processing" semaphore.
"""

import io

from PIL import Image, ImageOps

# Errors Pillow raises for corrupt, truncated or oversized input
IMAGE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)

# Formats Pillow can decode; SVG is stored as-is without a thumbnail
RASTER_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})


def is_raster(mime_type: str) -> bool:
    return mime_type in RASTER_MIME_TYPES


def read_dimensions(data: bytes) -> tuple[int, int]:
    """Width and height of an encoded image."""
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def build_thumbnail(data: bytes, width: int, height: int, quality: int) -> bytes:
    """
    Cover-crop the image to exactly width x height and encode it as JPEG.

    EXIF orientation is applied first so phone photos are not rotated.
    Transparent images are flattened onto white.
    """
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")

        thumb = ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        thumb.save(buffer, "JPEG", quality=quality, optimize=True)
        return buffer.getvalue()
