"""Upload normalization before the image is sent to the model"""

import base64
import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from bloodlens.core.errors import BadRequest

logger = logging.getLogger(__name__)


def normalize_image(data: bytes, max_edge: int = 800, quality: int = 85) -> bytes:
    """
    Decode an uploaded image, fit its long edge within max_edge pixels
    (never enlarging) and re-encode it as JPEG.

    Args:
        data: raw upload bytes
        max_edge: long edge budget in pixels
        quality: JPEG quality, 1-95

    Returns:
        JPEG bytes
    """
    try:
        with Image.open(io.BytesIO(data)) as im:
            im = ImageOps.exif_transpose(im)
            if im.mode != "RGB":
                im = im.convert("RGB")
            original_size = im.size
            im.thumbnail((max_edge, max_edge), Image.LANCZOS)

            out = io.BytesIO()
            im.save(out, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise BadRequest(f"Could not read image: {e}")

    logger.info(f"[Image] {original_size[0]}x{original_size[1]} -> {im.size[0]}x{im.size[1]}, {len(out.getvalue())} bytes")
    return out.getvalue()


def to_data_url(jpeg: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")
