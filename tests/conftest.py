"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Callable
from typing import Generator

# Point module-level configuration at throwaway locations before the app is imported
_TMP = tempfile.mkdtemp(prefix="esign-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP}/test.db")
os.environ.setdefault("LOCAL_STORAGE_DIR", f"{_TMP}/blobs")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver/files")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.esign.database import Base, get_db
from app.esign.main import app
from app.esign.services.compositor import SignatureCompositor
from app.esign.services.fetcher import DocumentFetcher
from app.esign.services.signing_service import SigningService, get_signing_service
from app.esign.services.storage import LocalStorageBackend, get_storage

from factories import BLOB_BASE_URL, RecordingPDFService, make_image, make_pdf


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """A single US Letter page (612 x 792)."""
    return make_pdf((612, 792))


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def recording_pdf_service() -> RecordingPDFService:
    return RecordingPDFService()


@pytest.fixture
def compositor(recording_pdf_service: RecordingPDFService) -> SignatureCompositor:
    return SignatureCompositor(pdf_service=recording_pdf_service)


@pytest.fixture
def storage(tmp_path) -> LocalStorageBackend:
    return LocalStorageBackend(tmp_path / "blobs", BLOB_BASE_URL)


@pytest.fixture
def blob_transport(storage: LocalStorageBackend) -> httpx.MockTransport:
    """Serves objects from the local storage fixture over fake HTTP."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if not url.startswith(BLOB_BASE_URL + "/"):
            return httpx.Response(404)
        path = storage.base_path / url[len(BLOB_BASE_URL) + 1 :]
        if not path.exists():
            return httpx.Response(404)
        return httpx.Response(200, content=path.read_bytes())

    return httpx.MockTransport(handler)


@pytest.fixture
def signing_service(
    storage: LocalStorageBackend, blob_transport: httpx.MockTransport
) -> SigningService:
    return SigningService(
        fetcher=DocumentFetcher(transport=blob_transport),
        storage=storage,
    )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory database shared across threads for the duration of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(
    db_session: Session,
    storage: LocalStorageBackend,
    signing_service: SigningService,
) -> Generator[TestClient, None, None]:
    """Create a test client wired to the test database, storage and pipeline."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_signing_service] = lambda: signing_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def upload_document(client: TestClient, sample_pdf_bytes: bytes) -> Callable[..., dict]:
    """Upload a PDF through the API and return the created document summary."""

    def _upload(
        owner_email: str = "owner@example.com",
        title: str = "Contract",
        pdf: bytes | None = None,
    ) -> dict:
        response = client.post(
            "/documents/upload",
            files={"document": ("contract.pdf", pdf or sample_pdf_bytes, "application/pdf")},
            data={"title": title, "owner_email": owner_email, "note": "Please sign"},
        )
        assert response.status_code == 200, response.text
        return response.json()["document"]

    return _upload
