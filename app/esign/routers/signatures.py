"""
Router for signature endpoints.

Handles:
- Owner signatures (rendered immediately)
- Recipient signatures and completion of signing
- Signing data lookup for recipients
- Deleting and moving signatures by their stable id

Signed PDF generation never fails a signature request. If it fails the
signature is still recorded and the document keeps its previous
signed_url until the next successful generation.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

# Handle both package imports and standalone imports
try:
    from ..converters import document_to_response
    from ..database import get_db
    from ..models import (
        DocumentStatus,
        RecipientResponse,
        RecipientStatus,
        SignatureActionResponse,
        SignatureCreate,
        SignatureStatus,
        SignerRequest,
        SigningDataResponse,
        SigningDocument,
        UpdatePositionRequest,
    )
    from ..models_db import Document, Signature, utcnow
    from ..services.signing_service import SigningService, get_signing_service
    from .deps import get_document_or_404, parse_uuid, regenerate_signed_pdf
except ImportError:
    from converters import document_to_response
    from database import get_db
    from models import (
        DocumentStatus,
        RecipientResponse,
        RecipientStatus,
        SignatureActionResponse,
        SignatureCreate,
        SignatureStatus,
        SignerRequest,
        SigningDataResponse,
        SigningDocument,
        UpdatePositionRequest,
    )
    from models_db import Document, Signature, utcnow
    from services.signing_service import SigningService, get_signing_service
    from routers.deps import get_document_or_404, parse_uuid, regenerate_signed_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signatures", tags=["signatures"])


def _append_signature(document: Document, request: SignatureCreate) -> Signature:
    signature = Signature(
        signer_email=request.signer_email,
        signer_name=request.signer_name,
        signature_data=request.signature_data,
        position=request.position.model_dump() if request.position else None,
        signed_at=utcnow(),
        status=SignatureStatus.SIGNED,
    )
    document.signatures.append(signature)
    return signature


def _find_signature(document: Document, signature_id: str) -> Signature | None:
    sig_uuid = parse_uuid(signature_id, "signature")
    return next((s for s in document.signatures if s.id == sig_uuid), None)


def _respond(db: Session, document: Document, all_signed: bool | None = None):
    db.commit()
    db.refresh(document)
    return SignatureActionResponse(
        document=document_to_response(document),
        all_signed=all_signed,
    )


@router.post("/{document_id}/sign", response_model=SignatureActionResponse)
async def owner_sign(
    document_id: str,
    request: SignatureCreate,
    db: Session = Depends(get_db),
    signing_service: SigningService = Depends(get_signing_service),
) -> SignatureActionResponse:
    """Add the owner's signature and render the signed PDF right away."""
    logger.info("Owner signing document %s as %s", document_id, request.signer_email)
    document = get_document_or_404(db, document_id)

    if document.owner_email != request.signer_email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only document owner can use this endpoint",
        )

    _append_signature(document, request)
    db.flush()
    await regenerate_signed_pdf(document, signing_service)
    return _respond(db, document)


@router.post("/{document_id}/add-signature", response_model=SignatureActionResponse)
async def add_signature(
    document_id: str,
    request: SignatureCreate,
    db: Session = Depends(get_db),
) -> SignatureActionResponse:
    """
    Add a signature without completing the signer's part.

    A recipient may add several signatures before calling complete-signing.
    """
    document = get_document_or_404(db, document_id)

    if document.status == DocumentStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Document is already completed",
        )

    _append_signature(document, request)
    return _respond(db, document)


@router.post("/{document_id}/complete-signing", response_model=SignatureActionResponse)
async def complete_signing(
    document_id: str,
    request: SignerRequest,
    db: Session = Depends(get_db),
    signing_service: SigningService = Depends(get_signing_service),
) -> SignatureActionResponse:
    """
    Mark a recipient as signed.

    When every recipient has signed the document is completed and the
    signed PDF is generated.
    """
    document = get_document_or_404(db, document_id)

    recipient = next(
        (r for r in document.recipients if r.email == request.signer_email), None
    )
    if recipient:
        recipient.status = RecipientStatus.SIGNED
    else:
        logger.warning(
            "complete-signing for %s: %s is not a recipient",
            document.id,
            request.signer_email,
        )

    all_signed = all(r.status == RecipientStatus.SIGNED for r in document.recipients)
    logger.info("All recipients signed for %s: %s", document.id, all_signed)

    if all_signed and document.status != DocumentStatus.COMPLETED:
        document.status = DocumentStatus.COMPLETED
        document.completed_at = utcnow()
        await regenerate_signed_pdf(document, signing_service)

    return _respond(db, document, all_signed=all_signed)


@router.get("/sign/{document_id}/{email}", response_model=SigningDataResponse)
async def get_signing_data(
    document_id: str,
    email: str,
    db: Session = Depends(get_db),
) -> SigningDataResponse:
    """Return what a recipient needs to sign a document."""
    email = email.strip().lower()
    logger.info("Fetching signing data for %s / %s", document_id, email)
    document = get_document_or_404(db, document_id)

    recipient = next((r for r in document.recipients if r.email == email), None)
    if not recipient:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to sign this document",
        )

    if recipient.status == RecipientStatus.SIGNED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Document already signed by this user",
        )

    return SigningDataResponse(
        document=SigningDocument(
            id=str(document.id),
            title=document.title,
            original_url=document.original_url,
            note=document.note,
        ),
        recipient=RecipientResponse.model_validate(recipient),
    )


@router.delete(
    "/{document_id}/signature/{signature_id}",
    response_model=SignatureActionResponse,
)
async def delete_signature(
    document_id: str,
    signature_id: str,
    request: SignerRequest,
    db: Session = Depends(get_db),
    signing_service: SigningService = Depends(get_signing_service),
) -> SignatureActionResponse:
    """
    Delete a signature.

    Allowed for the owner while the document is a draft, and for a recipient
    who has not completed signing while the document is sent. Drafts get
    their signed PDF regenerated, or cleared when no signatures remain.
    """
    document = get_document_or_404(db, document_id)
    signer_email = request.signer_email

    owner_on_draft = (
        document.status == DocumentStatus.DRAFT and document.owner_email == signer_email
    )
    recipient_on_sent = document.status == DocumentStatus.SENT and any(
        r.email == signer_email and r.status != RecipientStatus.SIGNED
        for r in document.recipients
    )
    if not owner_on_draft and not recipient_on_sent:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete signatures at this stage",
        )

    signature = _find_signature(document, signature_id)
    if not signature or signature.signer_email != signer_email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this signature",
        )

    document.signatures.remove(signature)
    db.flush()

    # Sent documents are rendered once every recipient has finished
    if document.status == DocumentStatus.DRAFT:
        if not document.signatures:
            document.signed_url = None
        else:
            await regenerate_signed_pdf(document, signing_service)

    return _respond(db, document)


@router.put(
    "/{document_id}/signature/{signature_id}/position",
    response_model=SignatureActionResponse,
)
async def update_signature_position(
    document_id: str,
    signature_id: str,
    request: UpdatePositionRequest,
    db: Session = Depends(get_db),
    signing_service: SigningService = Depends(get_signing_service),
) -> SignatureActionResponse:
    """Move a signature. The owner's edits on a draft are re-rendered."""
    document = get_document_or_404(db, document_id)

    signature = _find_signature(document, signature_id)
    if not signature or signature.signer_email != request.signer_email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this signature",
        )

    signature.position = request.position.model_dump()
    db.flush()

    if (
        request.signer_email == document.owner_email
        and document.status == DocumentStatus.DRAFT
    ):
        await regenerate_signed_pdf(document, signing_service)

    return _respond(db, document)
