"""
Pydantic models for the signing API and the compositing pipeline.

Defines the signature snapshot consumed by the compositor as well as the
request and response bodies of the HTTP API.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_email(value: str) -> str:
    """Strip and lowercase an email address."""
    value = value.strip().lower()
    if "@" not in value:
        raise ValueError("Invalid email address")
    return value


class DocumentStatus(str, Enum):
    """Lifecycle of a document."""

    DRAFT = "draft"
    SENT = "sent"
    COMPLETED = "completed"


class RecipientStatus(str, Enum):
    """Progress of one recipient."""

    PENDING = "pending"
    SENT = "sent"
    SIGNED = "signed"


class SignatureStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"


# =============================================================================
# Compositing Input
# =============================================================================


class Position(BaseModel):
    """
    Click point in display space.

    Attributes:
        x: Horizontal offset from the left edge, in display units.
        y: Vertical offset from the top edge, in display units.
        page: Zero-based page index.
    """

    x: float
    y: float
    page: int = 0

    @field_validator("page", mode="before")
    @classmethod
    def default_page(cls, v):
        """A missing page means the first page."""
        return 0 if v is None else v


class SignatureSnapshot(BaseModel):
    """
    A signature as seen by the compositor.

    Attributes:
        signer_name: Name printed below the signature image.
        signature_data: PNG or JPEG payload as a data-URI or bare base64.
        position: Where the signer clicked. Signatures without a position
            or without data are skipped.
        signed_at: When the signature was made.
    """

    model_config = ConfigDict(frozen=True)

    signer_name: str
    signature_data: str | None = None
    position: Position | None = None
    signed_at: datetime


class DocumentSnapshot(BaseModel):
    """Everything the signing pipeline needs to render one document."""

    model_config = ConfigDict(frozen=True)

    id: str
    original_url: str
    signatures: list[SignatureSnapshot] = Field(default_factory=list)


# =============================================================================
# API Requests
# =============================================================================


class RecipientIn(BaseModel):
    """A person asked to sign a document."""

    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(default="", max_length=200)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class UpdateRecipientsRequest(BaseModel):
    recipients: list[RecipientIn]


class SendDocumentRequest(BaseModel):
    """Request body for sending a document out for signature."""

    recipients: list[RecipientIn] = Field(..., min_length=1)
    message: str | None = Field(default=None, max_length=2000)


class SignatureCreate(BaseModel):
    """Request body for adding a signature to a document."""

    signer_email: str = Field(..., min_length=3, max_length=320)
    signer_name: str = Field(..., min_length=1, max_length=200)
    signature_data: str = Field(..., min_length=1)
    position: Position | None = None

    @field_validator("signer_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("signer_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Signer names are printed on the page, so blank ones are rejected."""
        v = v.strip()
        if not v:
            raise ValueError("Signer name must not be blank")
        return v


class SignerRequest(BaseModel):
    """Request body identifying the acting signer."""

    signer_email: str = Field(..., min_length=3, max_length=320)

    @field_validator("signer_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class UpdatePositionRequest(SignerRequest):
    position: Position


# =============================================================================
# API Responses
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response, including the display-space contract."""

    status: str = "healthy"
    message: str = "Signing API is running"
    version: str = "1.0.0"
    reference_width: float
    display_space_version: int


class RecipientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    name: str
    status: RecipientStatus


class SignatureResponse(BaseModel):
    """A stored signature, addressed by its stable id."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    signer_email: str
    signer_name: str
    signature_data: str
    position: Position | None
    signed_at: datetime
    status: SignatureStatus


class DocumentResponse(BaseModel):
    """Full document record."""

    id: str
    title: str
    original_url: str
    signed_url: str | None = None
    owner_email: str
    note: str | None = None
    status: DocumentStatus
    recipients: list[RecipientResponse] = Field(default_factory=list)
    signatures: list[SignatureResponse] = Field(default_factory=list)
    created_at: datetime
    completed_at: datetime | None = None


class DocumentSummary(BaseModel):
    id: str
    title: str
    original_url: str
    status: DocumentStatus
    created_at: datetime


class UploadResponse(BaseModel):
    success: bool = True
    document: DocumentSummary


class SignatureActionResponse(BaseModel):
    """Response for any request that changes a document's signatures."""

    success: bool = True
    document: DocumentResponse
    all_signed: bool | None = None


class SendDocumentResponse(BaseModel):
    success: bool = True
    message: str
    signing_links: dict[str, str]


class SigningDocument(BaseModel):
    id: str
    title: str
    original_url: str
    note: str | None = None


class SigningDataResponse(BaseModel):
    """What a recipient needs to sign: the document and their own record."""

    document: SigningDocument
    recipient: RecipientResponse
