"""Tests for the signature compositor."""

import base64
import io
import logging
from datetime import datetime

import pytest
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from app.esign.models import SignatureSnapshot
from app.esign.services.compositor import (
    SignatureCompositor,
    SignatureOutcome,
    decode_signature_data,
    format_signed_date,
)
from app.esign.services.exceptions import (
    ImageDecodeError,
    PDFDecodeError,
    RenderError,
    SigningError,
)
from app.esign.services.pdf_service import PDFDocument

from factories import RecordingPDFService, make_image, make_pdf, make_signature


def _calls(service: RecordingPDFService, kind: str) -> list[tuple]:
    return [c for c in service.calls if c[0] == kind]


class TestDecodeSignatureData:
    """Tests for data-URI / base64 payload decoding."""

    def test_data_uri_prefix_stripped(self, png_bytes: bytes):
        payload = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        assert decode_signature_data(payload) == png_bytes

    def test_bare_base64(self, png_bytes: bytes):
        assert decode_signature_data(base64.b64encode(png_bytes).decode()) == png_bytes

    def test_invalid_base64_is_an_image_error(self):
        with pytest.raises(ImageDecodeError):
            decode_signature_data("data:image/png;base64,@@@not-base64@@@")


class TestFormatSignedDate:
    def test_month_day_year_without_padding(self):
        assert format_signed_date(datetime(2025, 3, 7, 23, 59)) == "3/7/2025"
        assert format_signed_date(datetime(2024, 12, 25)) == "12/25/2024"


class TestComposite:
    """Tests for SignatureCompositor.composite."""

    def test_letter_page_placement(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        """Signature at (300, 400) on 612x792 is drawn at (246, 364) with its labels."""
        result = compositor.composite(sample_pdf_bytes, [make_signature("Alice")])

        assert [r.outcome for r in result.reports] == [SignatureOutcome.DRAWN]
        images = _calls(recording_pdf_service, "image")
        assert len(images) == 1
        _, page, x, y, width, height = images[0]
        assert page == 0
        assert x == pytest.approx(246)
        assert y == pytest.approx(364)
        assert (width, height) == (120, 40)

        texts = _calls(recording_pdf_service, "text")
        assert texts[0][2] == "Signed by: Alice"
        assert texts[0][3] == pytest.approx(246)
        assert texts[0][4] == pytest.approx(364 - 15)
        assert texts[0][5] == 8
        assert texts[1][2] == "Date: 3/7/2025"
        assert texts[1][4] == pytest.approx(364 - 28)
        assert texts[1][5] == 7

    def test_page_count_preserved(self, compositor: SignatureCompositor):
        pdf = make_pdf((612, 792), (595, 842), (612, 792))
        signatures = [
            make_signature("A", page=0),
            make_signature("B", page=1),
            make_signature("C", page=2),
        ]
        result = compositor.composite(pdf, signatures)
        reader = PdfReader(io.BytesIO(result.pdf_bytes))
        assert len(reader.pages) == 3
        assert result.page_count == 3

    def test_rendered_text_is_in_output(self, compositor: SignatureCompositor, sample_pdf_bytes):
        result = compositor.composite(sample_pdf_bytes, [make_signature("Alice Signer")])
        page = PdfReader(io.BytesIO(result.pdf_bytes)).pages[0]
        text = page.extract_text()
        assert "Signed by: Alice Signer" in text
        assert "Date: 3/7/2025" in text
        assert "Original page 1" in text
        assert len(page.images) == 1

    def test_jpeg_signature_drawn(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        result = compositor.composite(sample_pdf_bytes, [make_signature(data="jpeg")])
        assert result.reports[0].outcome == SignatureOutcome.DRAWN
        assert len(_calls(recording_pdf_service, "image")) == 1

    def test_out_of_range_page_skipped_without_drawing(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        result = compositor.composite(
            sample_pdf_bytes,
            [make_signature("Late", page=1), make_signature("Ok", page=0)],
        )
        assert result.reports[0].outcome == SignatureOutcome.SKIPPED_PAGE_OUT_OF_RANGE
        assert result.reports[1].outcome == SignatureOutcome.DRAWN
        assert all(c[1] == 0 for c in recording_pdf_service.calls)
        assert not any("Late" in str(c) for c in recording_pdf_service.calls)

    def test_negative_page_skipped(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        result = compositor.composite(sample_pdf_bytes, [make_signature(page=-1)])
        assert result.reports[0].outcome == SignatureOutcome.SKIPPED_PAGE_OUT_OF_RANGE
        assert recording_pdf_service.calls == []

    def test_missing_position_or_data_skipped(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        signatures = [
            SignatureSnapshot(
                signer_name="No Position",
                signature_data="abc",
                signed_at=datetime(2025, 1, 1),
            ),
            make_signature("No Data", data=None),
            make_signature("Empty Data", data=""),
        ]
        result = compositor.composite(sample_pdf_bytes, signatures)
        assert [r.outcome for r in result.reports] == [
            SignatureOutcome.SKIPPED_MISSING_DATA
        ] * 3
        assert recording_pdf_service.calls == []

    def test_corrupt_image_falls_back_to_text(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        corrupt = "data:image/png;base64," + base64.b64encode(b"definitely not an image").decode()
        result = compositor.composite(
            sample_pdf_bytes,
            [make_signature("Bob", data=corrupt), make_signature("Carol", x=100, y=100)],
        )

        assert result.reports[0].outcome == SignatureOutcome.FALLBACK
        assert result.reports[1].outcome == SignatureOutcome.DRAWN

        texts = _calls(recording_pdf_service, "text")
        fallback = texts[0]
        assert fallback[2] == "[Signature: Bob]"
        # Fallback is anchored at the click point, not centered
        assert fallback[3] == pytest.approx(306)
        assert fallback[4] == pytest.approx(384)
        assert fallback[5] == 12
        assert fallback[6] == (0.0, 0.0, 1.0)
        assert len(_calls(recording_pdf_service, "image")) == 1

        text = PdfReader(io.BytesIO(result.pdf_bytes)).pages[0].extract_text()
        assert "[Signature: Bob]" in text

    def test_invalid_base64_falls_back(self, compositor: SignatureCompositor, sample_pdf_bytes):
        result = compositor.composite(sample_pdf_bytes, [make_signature(data="%%%%")])
        assert result.reports[0].outcome == SignatureOutcome.FALLBACK

    def test_unexpected_error_is_contained(self, sample_pdf_bytes, monkeypatch):
        service = RecordingPDFService()
        compositor = SignatureCompositor(pdf_service=service)
        original_load = service.load

        def load_with_broken_page_size(file_bytes):
            document = original_load(file_bytes)

            def broken(page_index):
                raise RuntimeError("boom")

            monkeypatch.setattr(document, "page_size", broken)
            return document

        monkeypatch.setattr(service, "load", load_with_broken_page_size)

        result = compositor.composite(sample_pdf_bytes, [make_signature(), make_signature()])
        assert [r.outcome for r in result.reports] == [SignatureOutcome.FAILED] * 2
        assert "boom" in result.reports[0].error
        assert PdfReader(io.BytesIO(result.pdf_bytes)).pages

    def test_drawing_error_fails_only_that_signature(
        self, compositor: SignatureCompositor, sample_pdf_bytes, monkeypatch
    ):
        """Test that a failing image draw is reported and later signatures still render."""

        def broken_draw_image(self, *args, **kwargs):
            raise RuntimeError("image stream rejected")

        monkeypatch.setattr(canvas.Canvas, "drawImage", broken_draw_image)

        result = compositor.composite(
            sample_pdf_bytes,
            [make_signature("Alice"), make_signature("Bob", data="bm90IGFuIGltYWdl")],
        )

        assert [r.outcome for r in result.reports] == [
            SignatureOutcome.FAILED,
            SignatureOutcome.FALLBACK,
        ]
        assert "image stream rejected" in result.reports[0].error
        text = PdfReader(io.BytesIO(result.pdf_bytes)).pages[0].extract_text()
        assert "[Signature: Bob]" in text
        assert "Signed by: Alice" not in text

    def test_serialization_error_raises_render_error(
        self, compositor: SignatureCompositor, sample_pdf_bytes, monkeypatch
    ):
        def broken_save(self):
            raise RuntimeError("merge failed")

        monkeypatch.setattr(PDFDocument, "save", broken_save)

        with pytest.raises(RenderError) as exc_info:
            compositor.composite(sample_pdf_bytes, [make_signature()])
        assert isinstance(exc_info.value, SigningError)
        assert "merge failed" in str(exc_info.value)

    def test_name_outside_font_is_drawn_with_warning(
        self, compositor: SignatureCompositor, sample_pdf_bytes, caplog
    ):
        with caplog.at_level(logging.WARNING, logger="app.esign.services.pdf_service"):
            result = compositor.composite(sample_pdf_bytes, [make_signature("张伟 Zhang")])

        assert result.reports[0].outcome == SignatureOutcome.DRAWN
        assert "Helvetica" in caplog.text
        assert "张伟" in caplog.text

    def test_two_signers_drawn_in_input_order(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        result = compositor.composite(
            sample_pdf_bytes,
            [make_signature("First", x=100, y=100), make_signature("Second", x=400, y=600)],
        )
        assert result.count(SignatureOutcome.DRAWN) == 2
        names = [c[2] for c in _calls(recording_pdf_service, "text") if c[2].startswith("Signed by")]
        assert names == ["Signed by: First", "Signed by: Second"]

        text = PdfReader(io.BytesIO(result.pdf_bytes)).pages[0].extract_text()
        assert "Signed by: First" in text
        assert "Signed by: Second" in text

    def test_same_signer_twice_is_not_merged(
        self, compositor: SignatureCompositor, sample_pdf_bytes
    ):
        result = compositor.composite(
            sample_pdf_bytes, [make_signature("Dup"), make_signature("Dup")]
        )
        assert result.count(SignatureOutcome.DRAWN) == 2

    def test_geometry_is_idempotent(self, sample_pdf_bytes):
        signatures = [
            make_signature("A", x=10, y=20),
            make_signature("B", x=590, y=770),
            make_signature("C", data="not-an-image"),
        ]
        first = SignatureCompositor(pdf_service=RecordingPDFService())
        second = SignatureCompositor(pdf_service=RecordingPDFService())
        one = first.composite(sample_pdf_bytes, signatures)
        two = second.composite(sample_pdf_bytes, signatures)

        assert [r.placement for r in one.reports] == [r.placement for r in two.reports]
        assert first.pdf_service.calls == second.pdf_service.calls

    def test_input_is_not_mutated(self, compositor: SignatureCompositor, sample_pdf_bytes):
        signatures = [make_signature("A")]
        before = [s.model_dump() for s in signatures]
        compositor.composite(sample_pdf_bytes, signatures)
        assert [s.model_dump() for s in signatures] == before

    def test_each_page_uses_its_own_scale(
        self, compositor: SignatureCompositor, recording_pdf_service
    ):
        pdf = make_pdf((612, 792), (1200, 800))
        result = compositor.composite(
            pdf, [make_signature(x=300, y=100, page=0), make_signature(x=300, y=100, page=1)]
        )
        assert result.reports[0].placement.scale == pytest.approx(1.02)
        assert result.reports[1].placement.scale == pytest.approx(2.0)
        # Page 1: pdf_x = 600, pdf_y = 800 - 200 = 600
        assert result.reports[1].placement.x == pytest.approx(540)
        assert result.reports[1].placement.y == pytest.approx(580)

    def test_invalid_original_is_fatal(self, compositor: SignatureCompositor):
        with pytest.raises(PDFDecodeError):
            compositor.composite(b"not a pdf", [make_signature()])

    def test_large_image_is_scaled_into_box(
        self, compositor: SignatureCompositor, recording_pdf_service, sample_pdf_bytes
    ):
        big = "data:image/png;base64," + base64.b64encode(
            make_image("PNG", (1200, 400))
        ).decode()
        compositor.composite(sample_pdf_bytes, [make_signature(data=big)])
        assert _calls(recording_pdf_service, "image")[0][4:] == (120, 40)
