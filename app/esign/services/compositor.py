"""
Signature compositing.

Burns signature images and their provenance text (signer name and date)
onto the pages of an existing PDF. Signatures are drawn strictly in input
order. A signature that cannot be drawn never aborts the batch: it is
skipped, or replaced by a text placeholder when only its image is broken.
"""

import base64
import binascii
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

# Handle both package imports and standalone imports
try:
    from ..models import SignatureSnapshot
except ImportError:
    from models import SignatureSnapshot

from .exceptions import ImageDecodeError, RenderError
from .geometry import (
    SIGNATURE_HEIGHT,
    SIGNATURE_WIDTH,
    Placement,
    map_fallback,
    map_signature,
)
from .pdf_service import PDFDocument, PDFService, get_pdf_service

logger = logging.getLogger(__name__)

NAME_FONT_SIZE = 8
NAME_COLOR = (0.3, 0.3, 0.3)
NAME_OFFSET = 15

DATE_FONT_SIZE = 7
DATE_COLOR = (0.5, 0.5, 0.5)
DATE_OFFSET = 28

FALLBACK_FONT_SIZE = 12
FALLBACK_COLOR = (0.0, 0.0, 1.0)


class SignatureOutcome(str, enum.Enum):
    """What happened to one signature during compositing."""

    DRAWN = "drawn"
    FALLBACK = "fallback"
    SKIPPED_MISSING_DATA = "skipped_missing_data"
    SKIPPED_PAGE_OUT_OF_RANGE = "skipped_page_out_of_range"
    FAILED = "failed"


@dataclass(frozen=True)
class SignatureReport:
    """Per-signature compositing report, in input order."""

    index: int
    signer_name: str
    outcome: SignatureOutcome
    page: int | None = None
    placement: Placement | None = None
    error: str | None = None


@dataclass
class CompositeResult:
    """Rendered PDF bytes plus a report for every input signature."""

    pdf_bytes: bytes
    page_count: int
    reports: list[SignatureReport] = field(default_factory=list)

    def count(self, outcome: SignatureOutcome) -> int:
        return sum(1 for r in self.reports if r.outcome == outcome)


def decode_signature_data(signature_data: str) -> bytes:
    """
    Decode a data-URI or bare base64 signature payload to raw bytes.

    Raises:
        ImageDecodeError: If the payload is not valid base64.
    """
    payload = signature_data.split(",", 1)[1] if "," in signature_data else signature_data
    payload = "".join(payload.split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 signature data: {e}") from e


def format_signed_date(signed_at: datetime) -> str:
    """Render a timestamp as a short month/day/year date, e.g. 3/7/2025."""
    return f"{signed_at.month}/{signed_at.day}/{signed_at.year}"


class SignatureCompositor:
    """
    Draws a list of signatures onto a PDF.

    The PDF capability is provided by a PDFService so that the compositor
    only deals with placement and per-signature failure handling.
    """

    def __init__(self, pdf_service: PDFService | None = None):
        self.pdf_service = pdf_service or get_pdf_service()

    def composite(
        self, pdf_bytes: bytes, signatures: Sequence[SignatureSnapshot]
    ) -> CompositeResult:
        """
        Render all signatures onto a copy of the given PDF.

        Args:
            pdf_bytes: Original PDF file content.
            signatures: Signatures in the order they must be drawn.

        Returns:
            CompositeResult with the new PDF bytes and per-signature reports.

        Raises:
            PDFDecodeError: If the original PDF cannot be parsed.
            RenderError: If the composited PDF cannot be serialized.
        """
        document = self.pdf_service.load(pdf_bytes)
        page_count = document.page_count

        logger.info(
            "Compositing %d signature(s) onto %d page(s)",
            len(signatures),
            page_count,
        )

        reports = [
            self._composite_one(document, index, signature)
            for index, signature in enumerate(signatures)
        ]

        try:
            output = document.save()
        except Exception as e:
            logger.exception("Failed to serialize signed PDF")
            raise RenderError(f"Could not render signed PDF: {e}") from e

        logger.info("Signed PDF rendered (%d bytes)", len(output))
        return CompositeResult(pdf_bytes=output, page_count=page_count, reports=reports)

    def _composite_one(
        self, document: PDFDocument, index: int, signature: SignatureSnapshot
    ) -> SignatureReport:
        name = signature.signer_name

        if signature.position is None or not signature.signature_data:
            logger.warning("Signature %d (%s) missing position or data, skipping", index, name)
            return SignatureReport(index, name, SignatureOutcome.SKIPPED_MISSING_DATA)

        page_index = signature.position.page
        if not 0 <= page_index < document.page_count:
            logger.warning(
                "Invalid page index %d for signature %d (%s), document has %d pages",
                page_index,
                index,
                name,
                document.page_count,
            )
            return SignatureReport(
                index, name, SignatureOutcome.SKIPPED_PAGE_OUT_OF_RANGE, page=page_index
            )

        try:
            page_width, page_height = document.page_size(page_index)
            x, y = signature.position.x, signature.position.y

            try:
                image = document.embed_image(decode_signature_data(signature.signature_data))
            except ImageDecodeError as e:
                logger.error("Error embedding signature image for %s: %s", name, e)
                placement = map_fallback(x, y, page_width, page_height)
                document.draw_text(
                    page_index,
                    f"[Signature: {name}]",
                    placement.x,
                    placement.y,
                    size=FALLBACK_FONT_SIZE,
                    color=FALLBACK_COLOR,
                )
                return SignatureReport(
                    index,
                    name,
                    SignatureOutcome.FALLBACK,
                    page=page_index,
                    placement=placement,
                    error=str(e),
                )

            placement = map_signature(x, y, page_width, page_height)
            logger.debug(
                "Coordinate conversion for %s: click=(%.2f, %.2f) page=%.2fx%.2f "
                "scale=%.4f pdf=(%.2f, %.2f) final=(%.2f, %.2f)",
                name,
                x,
                y,
                page_width,
                page_height,
                placement.scale,
                placement.pdf_x,
                placement.pdf_y,
                placement.x,
                placement.y,
            )

            document.draw_image(
                page_index,
                image,
                placement.x,
                placement.y,
                SIGNATURE_WIDTH,
                SIGNATURE_HEIGHT,
            )
            document.draw_text(
                page_index,
                f"Signed by: {name}",
                placement.x,
                placement.y - NAME_OFFSET,
                size=NAME_FONT_SIZE,
                color=NAME_COLOR,
            )
            document.draw_text(
                page_index,
                f"Date: {format_signed_date(signature.signed_at)}",
                placement.x,
                placement.y - DATE_OFFSET,
                size=DATE_FONT_SIZE,
                color=DATE_COLOR,
            )
            logger.info("Signature %d (%s) added to page %d", index, name, page_index)
            return SignatureReport(
                index, name, SignatureOutcome.DRAWN, page=page_index, placement=placement
            )

        except Exception as e:
            logger.exception("Unexpected error compositing signature %d (%s)", index, name)
            return SignatureReport(
                index, name, SignatureOutcome.FAILED, page=page_index, error=str(e)
            )
