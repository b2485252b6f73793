"""
Routers package for FastAPI endpoints.

Organized by domain:
- documents: Upload, listing, recipients, download and deletion
- signatures: Adding, completing, moving and deleting signatures
"""

from . import documents, signatures

__all__ = ["documents", "signatures"]
