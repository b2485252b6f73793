"""
Helpers shared by the document and signature routers.
"""

import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

# Handle both package imports and standalone imports
try:
    from ..converters import document_to_snapshot
    from ..models_db import Document
    from ..services.exceptions import SigningError
    from ..services.signing_service import SigningService
except ImportError:
    from converters import document_to_snapshot
    from models_db import Document
    from services.exceptions import SigningError
    from services.signing_service import SigningService

logger = logging.getLogger(__name__)


def parse_uuid(value: str, what: str = "document") -> uuid.UUID:
    """Parse a path id, raising 400 on malformed input."""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {what} ID format",
        )


def get_document_or_404(db: Session, document_id: str) -> Document:
    doc_uuid = parse_uuid(document_id)
    document = db.get(Document, doc_uuid)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found",
        )
    return document


async def regenerate_signed_pdf(document: Document, signing_service: SigningService) -> bool:
    """
    Regenerate the signed PDF and store its URL on the document.

    Generation failures are logged and do not fail the calling request; the
    document keeps its previous signed_url. Returns True on success.
    """
    try:
        document.signed_url = await signing_service.generate_signed_pdf(
            document_to_snapshot(document)
        )
        logger.info("Signed PDF generated for %s: %s", document.id, document.signed_url)
        return True
    except SigningError as e:
        logger.error("PDF generation error for document %s: %s", document.id, e)
        return False
    except Exception:
        logger.exception("Unexpected PDF generation error for document %s", document.id)
        return False
