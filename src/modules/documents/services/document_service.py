import hashlib
import io
import logging
import os
import time
from datetime import datetime
from typing import List, Optional

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError, PyPdfError
from sqlalchemy.orm import Session

from config import PortalSettings, get_settings
from modules.documents.errors import DocumentNotFoundError, DocumentValidationError
from modules.documents.models.document import Document, DocumentStatus, DocumentType, PDF_MIME_TYPE
from modules.documents.models.schemas import UserStats
from modules.documents.models.user import User
from modules.documents.repositories.document_repository import DocumentRepository
from modules.workflow.models.workflow import Workflow
from modules.workflow.repositories.workflow_repository import WorkflowRepository

logger = logging.getLogger(__name__)

# Used when no active template exists for a document type
DEFAULT_APPROVAL_PATHS = {
    DocumentType.ENROLLMENT_VERIFICATION: ["academic_staff", "department_head", "dean"],
    DocumentType.GRADE_REPORT: ["academic_staff", "department_head"],
    DocumentType.OTHER: ["academic_staff", "department_head"],
}
GENERIC_APPROVAL_PATH = ["academic_staff", "department_head", "dean"]
GRADUATE_TRANSCRIPT_PATH = ["academic_staff", "assistant_registrar"]
STUDENT_TRANSCRIPT_PATH = ["academic_staff", "dean"]


class DocumentService:

    @staticmethod
    def get_documents_by_user(session: Session, user_id: int) -> List[Document]:
        return DocumentRepository(session).find_by_user_id(user_id)

    @staticmethod
    def create_document(
        session: Session,
        user_id: int,
        title: str,
        file_contents: bytes,
        filename: str,
        content_type: str,
        document_type: DocumentType = DocumentType.OTHER,
        description: Optional[str] = None,
        settings: Optional[PortalSettings] = None,
    ) -> Document:
        """
        Store an uploaded PDF:
        - validates the file
        - hashes the content (the hash is the document's public identity)
        - mirrors the file under UPLOAD_DIR/<username>/<date>/<hash>.pdf
        - creates the record in pending state
        """
        settings = settings or get_settings()
        DocumentService._validate_file(file_contents, filename, content_type, settings.max_file_size)

        user = session.get(User, user_id)
        if not user:
            raise DocumentValidationError(f"User {user_id} does not exist")

        digest = DocumentService._unique_hash(session, file_contents)
        file_path = DocumentService._store_file(settings, user.username, digest, filename, file_contents)

        document = Document(
            title=title,
            description=description,
            type=document_type,
            file_name=filename,
            file_path=file_path,
            file_size=len(file_contents),
            mime_type=content_type,
            hash=digest,
            status=DocumentStatus.PENDING,
            file_content=file_contents,
            file_metadata={"originalName": filename, "storedPath": file_path},
            user_id=user_id,
        )
        session.add(document)
        session.commit()
        logger.info("Document %s uploaded by user %s (%s)", document.id, user_id, digest)
        return document

    @staticmethod
    def request_document(
        session: Session,
        user_id: int,
        document_type: DocumentType,
        title: str,
        description: Optional[str] = None,
    ) -> Document:
        """A request without a file yet; the course unit uploads it later."""
        user = session.get(User, user_id)
        if not user:
            raise DocumentValidationError(f"User {user_id} does not exist")

        request_data = f"{user.id}-{document_type.value}-{title}-{time.time_ns()}"
        document = Document(
            title=title,
            description=description,
            type=document_type,
            file_name=f"{document_type.value}_request.pdf",
            file_path="",
            file_size=0,
            mime_type=PDF_MIME_TYPE,
            hash=hashlib.sha256(request_data.encode("utf-8")).hexdigest(),
            status=DocumentStatus.PENDING,
            user_id=user_id,
        )
        session.add(document)
        session.commit()
        return document

    @staticmethod
    def attach_file(session: Session, document_id: int, file_contents: bytes, filename: str,
                    content_type: str, settings: Optional[PortalSettings] = None) -> Document:
        """Attach the issued file to a request, replacing its placeholder hash."""
        settings = settings or get_settings()
        document = session.get(Document, document_id)
        if not document:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        DocumentService._validate_file(file_contents, filename, content_type, settings.max_file_size)

        digest = DocumentService._unique_hash(session, file_contents)
        file_path = DocumentService._store_file(settings, document.user.username, digest, filename, file_contents)

        document.file_name = filename
        document.file_path = file_path
        document.file_size = len(file_contents)
        document.mime_type = content_type
        document.hash = digest
        document.file_content = file_contents
        document.file_metadata = {"originalName": filename, "storedPath": file_path}
        session.commit()
        return document

    @staticmethod
    def _unique_hash(session: Session, file_contents: bytes) -> str:
        digest = hashlib.sha256(file_contents).hexdigest()
        if session.query(Document.id).filter(Document.hash == digest).first():
            raise DocumentValidationError("An identical document has already been uploaded")
        return digest

    @staticmethod
    def _store_file(settings: PortalSettings, username: str, digest: str,
                    filename: str, file_contents: bytes) -> str:
        """Mirror the file on disk as <UPLOAD_DIR>/<username>/<date>/<hash><ext>."""
        user_dir = os.path.join(settings.UPLOAD_DIR, username, datetime.utcnow().strftime("%Y-%m-%d"))
        os.makedirs(user_dir, exist_ok=True)
        file_path = os.path.join(user_dir, f"{digest}{os.path.splitext(filename)[1].lower()}")
        with open(file_path, "wb") as f:
            f.write(file_contents)
        return file_path

    @staticmethod
    def _validate_file(file_contents: bytes, filename: str, content_type: str, max_file_size: int):
        if content_type != PDF_MIME_TYPE:
            raise DocumentValidationError("The file must be a PDF")

        if not filename.lower().endswith(".pdf"):
            raise DocumentValidationError("The file extension must be .pdf")

        if not file_contents:
            raise DocumentValidationError("The file is empty")

        if len(file_contents) > max_file_size:
            raise DocumentValidationError(f"Maximum file size is {max_file_size // (1024*1024)} MB")

        try:
            reader = PdfReader(io.BytesIO(file_contents))
            _ = len(reader.pages)
        except (PdfReadError, PyPdfError, ValueError) as e:
            raise DocumentValidationError("Invalid or damaged PDF") from e

    @staticmethod
    def resolve_approval_path(session: Session, document: Document) -> List[str]:
        template = WorkflowRepository(session).get_document_template(document.type)
        if template and template.approval_path:
            return [role.lower() for role in template.approval_path]

        if document.type == DocumentType.TRANSCRIPT_REQUEST:
            graduated = bool(document.user and document.user.is_graduated)
            return list(GRADUATE_TRANSCRIPT_PATH if graduated else STUDENT_TRANSCRIPT_PATH)

        return list(DEFAULT_APPROVAL_PATHS.get(document.type, GENERIC_APPROVAL_PATH))

    @staticmethod
    def start_review(session: Session, document_id: int) -> Workflow:
        """Attach the approval workflow and move the document to in_review in one commit."""
        document = session.get(Document, document_id)
        if not document:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        if document.status != DocumentStatus.PENDING or document.workflow is not None:
            raise DocumentValidationError(f"Document {document_id} is already under review or resolved")

        step_roles = DocumentService.resolve_approval_path(session, document)
        if not step_roles:
            raise DocumentValidationError("The approval path must contain at least one role")

        try:
            workflow = WorkflowRepository(session).create_workflow(document.id, step_roles)
            document.status = DocumentStatus.IN_REVIEW
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Document %s in review: %s", document.id, " -> ".join(step_roles))
        return workflow

    @staticmethod
    def get_pending_for_role(session: Session, role: str) -> List[Document]:
        """Documents whose current step is assigned to ``role``."""
        role = str(getattr(role, "value", role)).lower()
        return [
            document for document in DocumentRepository(session).find_in_review()
            if document.workflow.current_role == role
        ]

    @staticmethod
    def get_user_stats(session: Session, user_id: int) -> UserStats:
        documents = DocumentRepository(session).find_by_user_id(user_id)
        return UserStats(
            total_documents=len(documents),
            pending_documents=sum(
                1 for d in documents if d.status in (DocumentStatus.PENDING, DocumentStatus.IN_REVIEW)
            ),
            approved_documents=sum(1 for d in documents if d.status == DocumentStatus.APPROVED),
            rejected_documents=sum(1 for d in documents if d.status == DocumentStatus.REJECTED),
        )
