import pytest
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import PortalSettings
from database import Base
from modules.documents.models import (  # noqa: F401  registers every table
    User, Document, DocumentTemplate, VerificationLog, Workflow, WorkflowAction
)
from modules.signatures.services import SignatureCipher
from modules.workflow.repositories.workflow_repository import WorkflowRepository
from modules.workflow.services import WorkflowService

engine = create_engine("sqlite:///:memory:")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base.metadata.create_all(bind=engine)

@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def session():
    db = TestingSessionLocal()
    yield db
    db.close()

@pytest.fixture
def settings(tmp_path):
    return PortalSettings(
        DATABASE_URL="sqlite:///:memory:",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SIGNATURE_ENCRYPTION_KEY=Fernet.generate_key().decode("ascii"),
    )

@pytest.fixture
def repository(session, settings):
    return WorkflowRepository(session, SignatureCipher(settings.SIGNATURE_ENCRYPTION_KEY))

@pytest.fixture
def workflow_service(repository, settings):
    return WorkflowService(repository, settings=settings)
