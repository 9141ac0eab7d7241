import io
import logging
from typing import Optional, Sequence, Tuple

from PIL import Image

from .config import JPEG_QUALITY

logger = logging.getLogger(__name__)

# bounding boxes are [ymin, xmin, ymax, xmax] on a 0-1000 grid
NORMALIZED_EXTENT = 1000.0


def pixel_rect(bbox: Sequence[float], width: int, height: int, padding: float = 0.0) -> Optional[Tuple[int, int, int, int]]:
    """
    Map a normalized box to a (left, top, right, bottom) pixel rectangle.

    Padding is a ratio of the box size added on every side; the result is
    clamped to the image. Returns None for boxes that collapse to nothing.
    """
    if bbox is None or len(bbox) != 4:
        return None
    try:
        ymin, xmin, ymax, xmax = [float(v) for v in bbox]
    except (TypeError, ValueError):
        return None

    pad_x = (xmax - xmin) * padding
    pad_y = (ymax - ymin) * padding

    left = max(0.0, (xmin - pad_x) / NORMALIZED_EXTENT * width)
    top = max(0.0, (ymin - pad_y) / NORMALIZED_EXTENT * height)
    right = min(float(width), (xmax + pad_x) / NORMALIZED_EXTENT * width)
    bottom = min(float(height), (ymax + pad_y) / NORMALIZED_EXTENT * height)

    rect = (int(round(left)), int(round(top)), int(round(right)), int(round(bottom)))
    if rect[2] - rect[0] <= 0 or rect[3] - rect[1] <= 0:
        return None
    return rect


def crop_region(image: Image.Image, bbox: Sequence[float], padding: float = 0.0) -> Optional[Image.Image]:
    rect = pixel_rect(bbox, image.width, image.height, padding)
    if rect is None:
        logger.debug("Discarding empty crop for box %s", bbox)
        return None
    return image.crop(rect)


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def crop_image(image: Image.Image, bbox: Sequence[float], padding: float = 0.0) -> Optional[bytes]:
    """Crop and JPEG-encode a normalized region, or None when the crop is empty."""
    region = crop_region(image, bbox, padding)
    if region is None:
        return None
    return encode_jpeg(region)


def decode_image(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return img.convert("RGB")
