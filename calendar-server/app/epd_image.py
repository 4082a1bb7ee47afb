# -*- coding:utf8 -*-
import io
import logging

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# IMAGE PALETTE CONVERSION (EPD)
# ------------------------------------------------------------------
# Index order is fixed; the display firmware decodes by position.
EPD_PALETTE = [
    (0, 0, 0),
    (255, 0, 0),
    (255, 255, 255),
]

FORMAT_GIF = ".gif"
FORMAT_PNG = ".png"

MIMETYPES = {
    FORMAT_GIF: "image/gif",
    FORMAT_PNG: "image/png",
}


def depalette_image(pixels, palette=EPD_PALETTE):
    palette_array = np.array(palette, dtype=np.int32)
    pixels = np.asarray(pixels, dtype=np.int32)[:, :, :3]
    diffs = np.sum((pixels[:, :, None, :] - palette_array[None, None, :, :]) ** 2, axis=3)
    return np.argmin(diffs, axis=2).astype(np.uint8)


def quantize_image(image: Image.Image, palette=EPD_PALETTE) -> Image.Image:
    """Map every pixel to the nearest palette color."""
    indices = depalette_image(image.convert("RGB"), palette)
    height, width = indices.shape
    out = Image.frombytes("P", (width, height), indices.tobytes())
    out.putpalette([c for rgb in palette for c in rgb])
    return out


def normalize_format(ext) -> str:
    ext = (ext or "").lower()
    if ext == FORMAT_PNG:
        return FORMAT_PNG
    return FORMAT_GIF


def mimetype_for(ext) -> str:
    return MIMETYPES[normalize_format(ext)]


def encode_image(image: Image.Image, ext=FORMAT_GIF) -> bytes:
    """Serialize the page; the whole payload is built before it is returned."""
    fmt = normalize_format(ext)
    bio = io.BytesIO()
    if fmt == FORMAT_PNG:
        image.convert("RGB").save(bio, format="PNG")
    else:
        quantize_image(image).save(bio, format="GIF", optimize=False)
    data = bio.getvalue()
    logger.debug("encoded %dx%d page as %s (%d bytes)", image.width, image.height, fmt, len(data))
    return data
