"""
Services package for the signing application.

Contains:
- geometry: Display-space to page-space coordinate mapping
- pdf_service: PDF loading, drawing and serialization
- compositor: Draws signatures onto PDF pages
- fetcher: Downloads original PDFs
- storage: Blob storage for original and signed PDFs
- signing_service: The end-to-end signed PDF pipeline
"""

from .compositor import SignatureCompositor
from .pdf_service import PDFService
from .signing_service import SigningService

__all__ = ["PDFService", "SignatureCompositor", "SigningService"]
