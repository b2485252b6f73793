"""
Conversions between ORM records and API / pipeline models.
"""

# Handle both package imports and standalone imports
try:
    from .models import (
        DocumentResponse,
        DocumentSnapshot,
        DocumentSummary,
        Position,
        RecipientResponse,
        SignatureResponse,
        SignatureSnapshot,
    )
    from .models_db import Document, Signature
except ImportError:
    from models import (
        DocumentResponse,
        DocumentSnapshot,
        DocumentSummary,
        Position,
        RecipientResponse,
        SignatureResponse,
        SignatureSnapshot,
    )
    from models_db import Document, Signature


def _position(raw: dict | None) -> Position | None:
    if not raw:
        return None
    return Position(**raw)


def signature_to_response(signature: Signature) -> SignatureResponse:
    return SignatureResponse(
        id=str(signature.id),
        signer_email=signature.signer_email,
        signer_name=signature.signer_name,
        signature_data=signature.signature_data,
        position=_position(signature.position),
        signed_at=signature.signed_at,
        status=signature.status,
    )


def document_to_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=str(document.id),
        title=document.title,
        original_url=document.original_url,
        signed_url=document.signed_url,
        owner_email=document.owner_email,
        note=document.note,
        status=document.status,
        recipients=[RecipientResponse.model_validate(r) for r in document.recipients],
        signatures=[signature_to_response(s) for s in document.signatures],
        created_at=document.created_at,
        completed_at=document.completed_at,
    )


def document_to_summary(document: Document) -> DocumentSummary:
    return DocumentSummary(
        id=str(document.id),
        title=document.title,
        original_url=document.original_url,
        status=document.status,
        created_at=document.created_at,
    )


def document_to_snapshot(document: Document) -> DocumentSnapshot:
    """
    Freeze a document's current signatures for the signing pipeline.

    The snapshot is detached from the session, so later edits to the
    document do not affect a generation already in progress.
    """
    return DocumentSnapshot(
        id=str(document.id),
        original_url=document.original_url,
        signatures=[
            SignatureSnapshot(
                signer_name=s.signer_name,
                signature_data=s.signature_data,
                position=_position(s.position),
                signed_at=s.signed_at,
            )
            for s in document.signatures
        ],
    )
