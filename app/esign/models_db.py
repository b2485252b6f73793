"""
SQLAlchemy database models for the signing application.

This module defines the ORM models for persisting documents, their
recipients and the signatures collected on them.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

# Handle both package imports (FastAPI) and standalone imports
try:
    from .database import Base
    from .models import DocumentStatus, RecipientStatus, SignatureStatus
except ImportError:
    from database import Base
    from models import DocumentStatus, RecipientStatus, SignatureStatus


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Document(Base):
    """
    A PDF uploaded for signature.

    Holds the location of the original file, the signed rendition once it
    has been generated, and the ordered list of signatures placed on it.
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    original_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    storage_key: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Blob storage key of the original PDF",
    )
    signed_url: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
    )
    owner_email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )
    note: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus),
        default=DocumentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )

    # Relationships
    recipients: Mapped[list["Recipient"]] = relationship(
        "Recipient",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Recipient.sequence",
        collection_class=ordering_list("sequence"),
    )
    signatures: Mapped[list["Signature"]] = relationship(
        "Signature",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Signature.sequence",
        collection_class=ordering_list("sequence"),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, title='{self.title}', status={self.status.value})>"


class Recipient(Base):
    """A person asked to sign a document."""

    __tablename__ = "recipients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(200),
        default="",
        nullable=False,
    )
    status: Mapped[RecipientStatus] = mapped_column(
        Enum(RecipientStatus),
        default=RecipientStatus.PENDING,
        nullable=False,
    )

    document: Mapped[Document] = relationship(
        "Document",
        back_populates="recipients",
    )

    def __repr__(self) -> str:
        return f"<Recipient(email='{self.email}', status={self.status.value})>"


class Signature(Base):
    """
    A signature placed on a document.

    Signatures are addressed by their id. The sequence column keeps the
    order they were added in, which is also the order they are drawn in.
    """

    __tablename__ = "signatures"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    signer_email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )
    signer_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    signature_data: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="PNG or JPEG image as data-URI or base64",
    )
    position: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Display-space click point: {x, y, page}",
    )
    signed_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    status: Mapped[SignatureStatus] = mapped_column(
        Enum(SignatureStatus),
        default=SignatureStatus.SIGNED,
        nullable=False,
    )

    document: Mapped[Document] = relationship(
        "Document",
        back_populates="signatures",
    )

    def __repr__(self) -> str:
        return f"<Signature(id={self.id}, signer='{self.signer_email}', seq={self.sequence})>"
