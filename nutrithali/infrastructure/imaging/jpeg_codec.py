"""
Pillow image codec.

JPEG encoding for inline transport and size-bounded compression for
storage. Accepts any format Pillow can open.
"""

import base64
import io

import structlog
from PIL import Image, UnidentifiedImageError

logger = structlog.get_logger(__name__)

TRANSPORT_QUALITY = 80
STORAGE_START_QUALITY = 80
STORAGE_QUALITY_STEP = 10
STORAGE_MIN_QUALITY = 10
STORAGE_TARGET_KB = 150.0


def _open_rgb(image_data: bytes) -> Image.Image:
    """Open bytes as an RGB image, flattening transparency onto white."""
    try:
        img: Image.Image = Image.open(io.BytesIO(image_data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Invalid image format or corrupted file") from e

    if img.mode in ("RGBA", "LA", "P"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        if img.mode == "P":
            img = img.convert("RGBA")
        mask = img.split()[-1] if img.mode in ("RGBA", "LA") else None
        background.paste(img, mask=mask)
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _to_jpeg(img: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    img.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()


class PillowImageCodec:
    """
    IImageCodec adapter backed by Pillow.

    Example:
        >>> codec = PillowImageCodec(target_size_kb=150.0)
        >>> payload = codec.encode_for_transport(photo_bytes)
        >>> stored = codec.compress_for_storage(photo_bytes)
    """

    def __init__(
        self,
        transport_quality: int = TRANSPORT_QUALITY,
        target_size_kb: float = STORAGE_TARGET_KB,
    ) -> None:
        self.transport_quality = transport_quality
        self.target_size_kb = target_size_kb

    def encode_for_transport(self, image: bytes) -> str:
        """Base64 JPEG for an inline request part."""
        jpeg = _to_jpeg(_open_rgb(image), self.transport_quality)
        return base64.b64encode(jpeg).decode("ascii")

    def compress_for_storage(self, image: bytes) -> bytes:
        """
        Step quality down from 80 by 10 until under the target size.

        Stops at quality 10 even if the target is not reached.
        """
        img = _open_rgb(image)
        quality = STORAGE_START_QUALITY
        data = _to_jpeg(img, quality)

        while len(data) / 1024.0 > self.target_size_kb and quality > STORAGE_MIN_QUALITY:
            quality -= STORAGE_QUALITY_STEP
            data = _to_jpeg(img, quality)

        logger.debug(
            "Compressed image for storage",
            quality=quality,
            size_kb=round(len(data) / 1024.0, 1),
            target_kb=self.target_size_kb,
        )
        return data

    @staticmethod
    def size_in_kb(data: bytes) -> float:
        return len(data) / 1024.0
