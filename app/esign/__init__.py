"""
Document Signing Backend Application.

A FastAPI service that collects signatures on uploaded PDFs and renders
them onto the pages of the original document.
"""

from .config import APP_VERSION as __version__
