import io
from datetime import datetime

import fitz
from PIL import Image

from meuboleto.core.image_processing import (
    PLACEHOLDER_SIZE,
    Placeholder,
    Rendered,
    build_placeholder,
    convert_pdf_to_jpeg,
)


def _pdf_bytes(width=595, height=842) -> bytes:
    doc = fitz.open()
    page = doc.new_page(width=width, height=height)
    page.insert_text((72, 72), "BOLETO - Companhia de Agua - R$ 80,00")
    data = doc.tobytes()
    doc.close()
    return data


def test_first_page_rendered_as_jpeg():
    result = convert_pdf_to_jpeg(_pdf_bytes(), "agua.pdf")
    assert isinstance(result, Rendered)
    assert result.kind == "rendered"
    assert result.filename == "agua.jpg"
    assert result.media_type == "image/jpeg"
    image = Image.open(io.BytesIO(result.image_bytes))
    assert image.format == "JPEG"
    # rendered at 2x scale
    assert image.size == (result.width, result.height)
    assert result.width >= 1190


def test_unreadable_pdf_becomes_placeholder():
    result = convert_pdf_to_jpeg(b"definitely not a pdf", "quebrado.pdf")
    assert isinstance(result, Placeholder)
    assert result.kind == "placeholder"
    assert result.filename == "quebrado.jpg"
    assert result.reason
    assert Image.open(io.BytesIO(result.image_bytes)).size == PLACEHOLDER_SIZE


def test_too_small_render_becomes_placeholder():
    result = convert_pdf_to_jpeg(_pdf_bytes(width=40, height=40), "mini.pdf", min_width=200, min_height=200)
    assert isinstance(result, Placeholder)
    assert "pequena" in result.reason


def test_placeholder_is_a_white_page():
    data = build_placeholder("conta.pdf", now=datetime(2024, 7, 1, 9, 30))
    image = Image.open(io.BytesIO(data)).convert("RGB")
    assert image.size == PLACEHOLDER_SIZE
    assert image.getpixel((5, 5)) == (255, 255, 255)


def _encrypted_pdf_bytes() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "BOLETO protegido")
    data = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="dono",
        user_pw="senha",
    )
    doc.close()
    return data


def test_password_protected_pdf_becomes_placeholder():
    result = convert_pdf_to_jpeg(_encrypted_pdf_bytes(), "boleto.pdf")
    assert isinstance(result, Placeholder)
    assert result.filename == "boleto.jpg"
    assert "senha" in result.reason
    assert Image.open(io.BytesIO(result.image_bytes)).size == PLACEHOLDER_SIZE
