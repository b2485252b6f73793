"""
Signed PDF generation.

Runs the whole pipeline for one document: download the original PDF,
composite every signature onto it and publish the result. Either a
complete signed PDF is published or nothing is.
"""

import asyncio
import logging
import time

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
    from ..models import DocumentSnapshot
except ImportError:
    from config import get_settings
    from models import DocumentSnapshot

from .compositor import CompositeResult, SignatureCompositor, SignatureOutcome
from .exceptions import SigningError
from .fetcher import DocumentFetcher
from .storage import PDF_CONTENT_TYPE, SIGNED_FOLDER, StorageBackend, get_storage

logger = logging.getLogger(__name__)


def signed_public_id(document_id: str, timestamp_ms: int | None = None) -> str:
    """Blob id for a signed rendition: signed_<documentId>_<epoch millis>."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"signed_{document_id}_{timestamp_ms}"


class SigningService:
    """
    Generates and publishes signed PDFs.

    Concurrent calls for the same document are not coordinated here;
    callers that need a consistent signed_url must serialize them.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        storage: StorageBackend,
        compositor: SignatureCompositor | None = None,
    ):
        self.fetcher = fetcher
        self.storage = storage
        self.compositor = compositor or SignatureCompositor()

    async def render(self, document: DocumentSnapshot) -> CompositeResult:
        """
        Download the original PDF and composite the signatures onto it.

        Raises:
            DocumentFetchError: If the original cannot be downloaded.
            PDFDecodeError: If the original is not a readable PDF.
        """
        original = await self.fetcher.fetch(document.original_url)
        # Compositing is CPU bound, keep it off the event loop
        return await asyncio.to_thread(
            self.compositor.composite, original, document.signatures
        )

    async def generate_signed_pdf(self, document: DocumentSnapshot) -> str:
        """
        Render and publish the signed PDF for a document.

        Args:
            document: Snapshot of the document and its signatures.

        Returns:
            Public URL of the signed PDF.

        Raises:
            SigningError: If fetching, decoding, rendering or publishing fails.
        """
        logger.info(
            "Starting PDF generation for document %s (%d signatures)",
            document.id,
            len(document.signatures),
        )
        try:
            result = await self.render(document)

            stored = await asyncio.to_thread(
                self.storage.publish,
                result.pdf_bytes,
                SIGNED_FOLDER,
                signed_public_id(document.id),
                PDF_CONTENT_TYPE,
                True,
            )
        except SigningError as e:
            logger.error("PDF generation error for document %s: %s", document.id, e)
            raise

        logger.info(
            "Signed PDF for document %s published at %s "
            "(drawn=%d, fallback=%d, skipped=%d, failed=%d)",
            document.id,
            stored.url,
            result.count(SignatureOutcome.DRAWN),
            result.count(SignatureOutcome.FALLBACK),
            result.count(SignatureOutcome.SKIPPED_MISSING_DATA)
            + result.count(SignatureOutcome.SKIPPED_PAGE_OUT_OF_RANGE),
            result.count(SignatureOutcome.FAILED),
        )
        return stored.url


# Singleton instance for convenience
_signing_service: SigningService | None = None


def get_signing_service() -> SigningService:
    """Get or create the signing service singleton."""
    global _signing_service
    if _signing_service is None:
        settings = get_settings()
        _signing_service = SigningService(
            fetcher=DocumentFetcher(timeout=settings.fetch_timeout_seconds),
            storage=get_storage(),
        )
    return _signing_service
