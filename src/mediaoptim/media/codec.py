from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from mediaoptim.errors import EncodingError

WEBP_FORMAT = "WEBP"


def _normalise_mode(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        return img.convert("RGBA")
    return img.convert("RGB")


def encode_webp(data: bytes, quality: int) -> bytes:
    """Re-encode ``data`` as WebP at ``quality``.

    Raises EncodingError when the bytes are not a decodable image or the
    encoder rejects them.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            frame = _normalise_mode(img)
            out = BytesIO()
            frame.save(out, format=WEBP_FORMAT, quality=int(quality))
    except UnidentifiedImageError as exc:
        raise EncodingError(f"not a decodable image: {exc}") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        raise EncodingError(f"webp encoding failed at quality {quality}: {exc}") from exc
    return out.getvalue()

