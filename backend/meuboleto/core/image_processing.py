"""PDF first-page rasterization for bill uploads.

``convert_pdf_to_jpeg`` always returns an image: either the first page
rendered with PyMuPDF (``Rendered``) or, when rendering fails or the result is
too small to read, a Pillow-drawn page naming the file (``Placeholder``).
Callers check the tag instead of inspecting pixels.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

RENDER_SCALE = 2.0
JPEG_QUALITY = 90

PLACEHOLDER_SIZE = (1240, 1754)  # A4 at 150 dpi
PLACEHOLDER_QUALITY = 85


class RasterizationError(Exception):
    """The first page could not be turned into a usable image."""


@dataclass(frozen=True)
class Rendered:
    image_bytes: bytes
    filename: str
    width: int
    height: int
    media_type: str = "image/jpeg"
    kind: str = "rendered"


@dataclass(frozen=True)
class Placeholder:
    image_bytes: bytes
    filename: str
    reason: str
    width: int = PLACEHOLDER_SIZE[0]
    height: int = PLACEHOLDER_SIZE[1]
    media_type: str = "image/jpeg"
    kind: str = "placeholder"


ConversionResult = Union[Rendered, Placeholder]


def _jpeg_name(original: Optional[str]) -> str:
    stem = Path(original or "documento").stem or "documento"
    return f"{stem}.jpg"


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def rasterize_first_page(
    content: bytes,
    *,
    scale: float = RENDER_SCALE,
    min_width: int = 200,
    min_height: int = 200,
) -> Image.Image:
    """Render page one of a PDF. Raises ``RasterizationError`` on any failure."""
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise RasterizationError(f"PDF ilegível: {exc}") from exc
    try:
        if doc.needs_pass:
            raise RasterizationError("PDF protegido por senha")
        if doc.page_count == 0:
            raise RasterizationError("PDF não contém páginas")
        page = doc.load_page(0)
        pix = page.get_pixmap(
            matrix=fitz.Matrix(scale, scale),
            colorspace=fitz.csRGB,
            alpha=False,
        )
        image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
    except (RuntimeError, ValueError) as exc:
        raise RasterizationError(f"Falha ao renderizar PDF: {exc}") from exc
    finally:
        doc.close()

    width, height = image.size
    if width < min_width or height < min_height:
        raise RasterizationError(f"Imagem renderizada muito pequena: {width}x{height}")
    return image


def build_placeholder(filename: Optional[str], *, now: Optional[datetime] = None) -> bytes:
    """Blank page with the document name and conversion time."""
    now = now or datetime.now()
    img = Image.new("RGB", PLACEHOLDER_SIZE, "white")
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    lines = [
        "PDF convertido para análise",
        f"Documento: {filename or 'sem nome'}",
        "Este arquivo foi convertido automaticamente",
        "para permitir a análise por IA",
        f"Convertido em: {now.strftime('%d/%m/%Y %H:%M')}",
    ]
    y = 200
    center_x = PLACEHOLDER_SIZE[0] // 2
    for line in lines:
        left, top, right, bottom = draw.textbbox((0, 0), line, font=font)
        draw.text((center_x - (right - left) // 2, y), line, fill="black", font=font)
        y += (bottom - top) + 30
    return _encode_jpeg(img, PLACEHOLDER_QUALITY)


def convert_pdf_to_jpeg(
    content: bytes,
    filename: Optional[str] = None,
    *,
    min_width: int = 200,
    min_height: int = 200,
    now: Optional[datetime] = None,
) -> ConversionResult:
    """Rasterize the first page, falling back to a placeholder image."""
    jpeg_name = _jpeg_name(filename)
    try:
        image = rasterize_first_page(content, min_width=min_width, min_height=min_height)
    except RasterizationError as exc:
        logger.warning("PDF rasterization failed file=%s: %s", filename, exc)
        return Placeholder(
            image_bytes=build_placeholder(filename, now=now),
            filename=jpeg_name,
            reason=str(exc),
        )

    logger.info("PDF rasterized file=%s size=%dx%d", filename, image.width, image.height)
    return Rendered(
        image_bytes=_encode_jpeg(image, JPEG_QUALITY),
        filename=jpeg_name,
        width=image.width,
        height=image.height,
    )
