"""
Tests for PDF attachment text extraction.
"""
import pytest

from factories import make_pdf_bytes

from plano_nem.attachments import AttachmentError, extract_pdf_text, looks_like_pdf


class TestLooksLikePdf:
    def test_signature(self):
        assert looks_like_pdf(make_pdf_bytes())
        assert not looks_like_pdf(b"PK\x03\x04")
        assert not looks_like_pdf(b"")


class TestExtractPdfText:
    def test_extracts_text(self):
        assert "Programa analitico" in extract_pdf_text(make_pdf_bytes("Programa analitico"))

    def test_truncates(self):
        text = extract_pdf_text(make_pdf_bytes("Contexto escolar de la comunidad"), max_chars=8)
        assert len(text) == 8

    def test_rejects_non_pdf(self):
        with pytest.raises(AttachmentError):
            extract_pdf_text(b"<html></html>")

    def test_rejects_corrupt_pdf(self):
        with pytest.raises(AttachmentError):
            extract_pdf_text(b"%PDF-1.4\n garbage without objects")
