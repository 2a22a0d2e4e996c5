import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from meuboleto.core.errors import RemoteRequestError, UnsupportedFormatError
from meuboleto.schemas.settings import UserPreferences
from meuboleto.services.ai.common.providers import MockProvider
from meuboleto.services.intake_service import (
    IntakeState,
    UploadedFile,
    manual_seed_for,
    resolve_media_type,
    run_intake,
    validate_upload,
)

GOOD_REPLY = (
    '{"beneficiary": "Enel", "amount": 210.33, "dueDate": "2024-09-10",'
    ' "category": "Energia", "confidence": 0.95, "barcode": "8364 0000 0021"}'
)


def _upload(name="conta-luz.png", ctype="image/png", content=b"\x89PNG data"):
    return UploadedFile(filename=name, content_type=ctype, content=content)


def _run(coro):
    return asyncio.run(coro)


class ValidationTests(unittest.TestCase):
    def test_oversized_file_rejected_before_any_network_call(self):
        big = _upload(name="grande.pdf", ctype="application/pdf", content=b"0" * (12 * 1024 * 1024))
        with patch("meuboleto.services.intake_service.extract_bill", new=AsyncMock()) as extract:
            with self.assertRaises(UnsupportedFormatError) as ctx:
                _run(run_intake(big, UserPreferences(ai_provider="mock")))
        extract.assert_not_called()
        self.assertTrue(ctx.exception.too_large)
        self.assertEqual(ctx.exception.status_code, 413)

    def test_unsupported_type_rejected(self):
        with self.assertRaises(UnsupportedFormatError) as ctx:
            validate_upload("planilha.xlsx", "application/vnd.ms-excel", 100)
        self.assertEqual(ctx.exception.status_code, 415)

    def test_empty_file_rejected(self):
        with self.assertRaises(UnsupportedFormatError):
            validate_upload("conta.pdf", "application/pdf", 0)

    def test_media_type_from_extension_when_browser_sends_octet_stream(self):
        self.assertEqual(resolve_media_type("conta.JPG", "application/octet-stream"), "image/jpeg")
        self.assertEqual(resolve_media_type("conta.pdf", ""), "application/pdf")
        self.assertEqual(resolve_media_type("conta.png", "image/jpg"), "image/jpeg")
        self.assertIsNone(resolve_media_type("conta.txt", "text/plain"))

    def test_manual_seed_from_filename(self):
        self.assertEqual(manual_seed_for("sabesp-julho.pdf"), {"beneficiary": "Boleto sabesp-julho"})
        self.assertEqual(manual_seed_for(""), {"beneficiary": "Boleto Importado"})


class PipelineTests(unittest.TestCase):
    def test_no_credential_goes_to_manual_entry(self):
        with patch("meuboleto.services.intake_service.extract_bill", new=AsyncMock()) as extract:
            result = _run(run_intake(_upload(), UserPreferences(ai_provider="openai")))
        extract.assert_not_called()
        self.assertEqual(result.state, IntakeState.AWAITING_MANUAL_ENTRY)
        self.assertEqual(result.manual_seed, {"beneficiary": "Boleto conta-luz"})
        self.assertEqual(
            result.history,
            [IntakeState.IDLE, IntakeState.FILE_SELECTED, IntakeState.AWAITING_MANUAL_ENTRY],
        )

    def test_successful_analysis_returns_candidate_for_confirmation(self):
        with patch(
            "meuboleto.services.ai.common.providers.MockProvider._default_reply",
            return_value=GOOD_REPLY,
        ):
            result = _run(run_intake(_upload(), UserPreferences(ai_provider="mock")))
        self.assertEqual(result.state, IntakeState.ANALYSIS_COMPLETE)
        self.assertEqual(result.candidate.beneficiary, "Enel")
        self.assertEqual(result.candidate.barcode, "836400000021")
        self.assertEqual(result.provider, "mock")
        self.assertIsNone(result.conversion)
        self.assertEqual(result.history[-2:], [IntakeState.ANALYZING, IntakeState.ANALYSIS_COMPLETE])

    def test_unparseable_reply_seeds_filename_guess(self):
        with patch.object(MockProvider, "_default_reply", return_value="Desculpe, não consegui."):
            result = _run(run_intake(_upload(), UserPreferences(ai_provider="mock")))
        self.assertEqual(result.state, IntakeState.ANALYSIS_FAILED)
        self.assertEqual(result.error.code, "ai_parse_error")
        self.assertEqual(result.manual_seed, {"beneficiary": "Boleto conta-luz"})
        self.assertIsNone(result.candidate)

    def test_incomplete_reply_seeds_model_beneficiary(self):
        with patch.object(MockProvider, "_default_reply", return_value='{"beneficiary": "Sabesp"}'):
            result = _run(run_intake(_upload(), UserPreferences(ai_provider="mock")))
        self.assertEqual(result.state, IntakeState.ANALYSIS_FAILED)
        self.assertEqual(result.error.code, "incomplete_extraction")
        self.assertEqual(result.manual_seed, {"beneficiary": "Sabesp"})
        self.assertEqual(result.error.extra["missing_fields"], ["amount", "dueDate"])

    def test_remote_failure_is_reported_not_raised(self):
        failing = AsyncMock(side_effect=RemoteRequestError("Erro da API OpenAI: quota", service="openai"))
        with patch("meuboleto.services.intake_service.extract_bill", new=failing):
            result = _run(run_intake(_upload(), UserPreferences(ai_provider="openai", ai_api_key="sk-test")))
        failing.assert_awaited_once()
        self.assertEqual(result.state, IntakeState.ANALYSIS_FAILED)
        self.assertEqual(result.error.code, "remote_request_error")
        self.assertEqual(result.provider, "openai")

    def test_pdf_rasterized_when_preference_enabled(self):
        prefs = UserPreferences(ai_provider="mock", convert_pdf_to_image=True)
        upload = _upload(name="boleto.pdf", ctype="application/pdf", content=b"not really a pdf")
        with patch.object(MockProvider, "_default_reply", return_value=GOOD_REPLY):
            result = _run(run_intake(upload, prefs))
        # Unreadable PDF falls back to the placeholder page and analysis still runs.
        self.assertEqual(result.conversion, "placeholder")
        self.assertEqual(result.state, IntakeState.ANALYSIS_COMPLETE)
