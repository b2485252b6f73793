"""
Router for document endpoints.

Handles:
- Uploading a PDF for signature
- Fetching and listing documents
- Managing recipients and sending a document out for signature
- Downloading the signed rendition
- Deleting documents
"""

import asyncio
import logging
import uuid
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

# Handle both package imports and standalone imports
try:
    from ..config import Settings, get_settings
    from ..converters import document_to_response, document_to_summary
    from ..database import get_db
    from ..models import (
        DocumentResponse,
        DocumentStatus,
        RecipientStatus,
        SendDocumentRequest,
        SendDocumentResponse,
        UpdateRecipientsRequest,
        UploadResponse,
        normalize_email,
    )
    from ..models_db import Document, Recipient
    from ..services.exceptions import PDFDecodeError, PublishError
    from ..services.pdf_service import PDFService, get_pdf_service
    from ..services.storage import (
        ORIGINALS_FOLDER,
        PDF_CONTENT_TYPE,
        StorageBackend,
        get_storage,
    )
    from .deps import get_document_or_404
except ImportError:
    from config import Settings, get_settings
    from converters import document_to_response, document_to_summary
    from database import get_db
    from models import (
        DocumentResponse,
        DocumentStatus,
        RecipientStatus,
        SendDocumentRequest,
        SendDocumentResponse,
        UpdateRecipientsRequest,
        UploadResponse,
        normalize_email,
    )
    from models_db import Document, Recipient
    from services.exceptions import PDFDecodeError, PublishError
    from services.pdf_service import PDFService, get_pdf_service
    from services.storage import (
        ORIGINALS_FOLDER,
        PDF_CONTENT_TYPE,
        StorageBackend,
        get_storage,
    )
    from routers.deps import get_document_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    document: Annotated[UploadFile, File(description="PDF file to be signed")],
    title: Annotated[str, Form(min_length=1, max_length=255)],
    owner_email: Annotated[str, Form(min_length=3, max_length=320)],
    note: Annotated[str | None, Form(max_length=2000)] = None,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    pdf_service: PDFService = Depends(get_pdf_service),
    settings: Settings = Depends(get_settings),
) -> UploadResponse:
    """
    Upload a PDF and create a draft document owned by owner_email.

    The file is validated as a readable PDF before it is stored.
    """
    if not document.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    if not document.filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted",
        )

    try:
        owner_email = normalize_email(owner_email)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        file_bytes = await document.read()
    finally:
        await document.close()

    if not file_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file provided",
        )

    if len(file_bytes) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_upload_bytes} byte limit",
        )

    try:
        page_count = await asyncio.to_thread(pdf_service.get_page_count, file_bytes)
    except PDFDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    logger.info(
        "Uploading %s for %s (%d bytes, %d pages)",
        document.filename,
        owner_email,
        len(file_bytes),
        page_count,
    )

    try:
        stored = await asyncio.to_thread(
            storage.publish,
            file_bytes,
            ORIGINALS_FOLDER,
            uuid.uuid4().hex,
            PDF_CONTENT_TYPE,
            False,
        )
    except PublishError as e:
        logger.error("Upload error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to upload document",
        )

    record = Document(
        title=title.strip(),
        original_url=stored.url,
        storage_key=stored.key,
        owner_email=owner_email,
        note=note,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    return UploadResponse(document=document_to_summary(record))


@router.get("/user/{email}", response_model=list[DocumentResponse])
async def list_user_documents(
    email: str,
    db: Session = Depends(get_db),
) -> list[DocumentResponse]:
    """List documents owned by email, newest first."""
    documents = (
        db.query(Document)
        .filter(Document.owner_email == email.strip().lower())
        .order_by(Document.created_at.desc())
        .all()
    )
    return [document_to_response(d) for d in documents]


@router.get("/download/{document_id}")
async def download_signed_document(
    document_id: str,
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Redirect to the signed PDF of a completed document."""
    document = get_document_or_404(db, document_id)

    if document.status != DocumentStatus.COMPLETED or not document.signed_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Signed document not available",
        )

    return RedirectResponse(document.signed_url, status_code=status.HTTP_302_FOUND)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    db: Session = Depends(get_db),
) -> DocumentResponse:
    document = get_document_or_404(db, document_id)
    logger.info(
        "Document fetched: %s (signatures=%d, signed_url=%s)",
        document.id,
        len(document.signatures),
        "exists" if document.signed_url else "none",
    )
    return document_to_response(document)


def _replace_recipients(document: Document, request_recipients, recipient_status) -> None:
    document.recipients.clear()
    for r in request_recipients:
        document.recipients.append(
            Recipient(email=r.email, name=r.name, status=recipient_status)
        )


@router.put("/{document_id}/recipients", response_model=DocumentResponse)
async def update_recipients(
    document_id: str,
    request: UpdateRecipientsRequest,
    db: Session = Depends(get_db),
) -> DocumentResponse:
    """Replace the recipient list of a document."""
    document = get_document_or_404(db, document_id)
    _replace_recipients(document, request.recipients, RecipientStatus.PENDING)
    db.commit()
    db.refresh(document)
    return document_to_response(document)


@router.post("/{document_id}/send", response_model=SendDocumentResponse)
async def send_document(
    document_id: str,
    request: SendDocumentRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SendDocumentResponse:
    """
    Send a document out for signature.

    Sets the recipients, marks the document as sent and returns one signing
    link per recipient. Delivering the links is up to the caller.
    """
    document = get_document_or_404(db, document_id)

    if document.status == DocumentStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Document is already completed",
        )

    _replace_recipients(document, request.recipients, RecipientStatus.SENT)
    document.status = DocumentStatus.SENT
    db.commit()

    base = settings.client_url.rstrip("/")
    links = {
        r.email: f"{base}/sign/{document.id}/{quote(r.email, safe='')}"
        for r in request.recipients
    }
    logger.info("Document %s sent to %d recipient(s)", document.id, len(links))

    return SendDocumentResponse(
        message="Document sent successfully to all recipients",
        signing_links=links,
    )


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> dict:
    """Delete a document and its stored original."""
    document = get_document_or_404(db, document_id)

    if not await asyncio.to_thread(storage.delete, document.storage_key):
        logger.warning("Original for document %s was not found in storage", document.id)

    db.delete(document)
    db.commit()
    return {"success": True}
