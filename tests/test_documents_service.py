import hashlib
import os

import pytest

from helpers import create_dummy_user, create_pdf_bytes, create_template, create_document_in_review
from modules.documents.errors import DocumentNotFoundError, DocumentValidationError
from modules.documents.models.document import Document, DocumentStatus, DocumentType
from modules.documents.models.user import UserRole
from modules.documents.services.document_service import (
    DocumentService,
    GENERIC_APPROVAL_PATH,
    GRADUATE_TRANSCRIPT_PATH,
    STUDENT_TRANSCRIPT_PATH,
)


def upload_pdf_obj(session, settings, user_id, filename="some.pdf", document_type=DocumentType.OTHER):
    return DocumentService.create_document(
        session, user_id, "Some document", create_pdf_bytes(), filename,
        "application/pdf", document_type, settings=settings,
    )


def test_reject_non_pdf(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    with pytest.raises(DocumentValidationError):
        DocumentService.create_document(
            session, user.id, "Bad", b"Fake DOCX content", "no_pdf.docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            settings=settings,
        )


def test_reject_damaged_pdf(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    with pytest.raises(DocumentValidationError):
        DocumentService.create_document(
            session, user.id, "Bad", b"%PDF-1.4 not really", "broken.pdf", "application/pdf",
            settings=settings,
        )


def test_reject_oversized_pdf(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    small = settings.model_copy(update={"MAX_FILE_SIZE_MB": 0})
    with pytest.raises(DocumentValidationError):
        DocumentService.create_document(
            session, user.id, "Big", create_pdf_bytes(), "big.pdf", "application/pdf", settings=small,
        )


def test_upload_valid_pdf(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    doc = upload_pdf_obj(session, settings, user.id, "prueba.pdf")

    assert doc.id is not None
    assert doc.status == DocumentStatus.PENDING
    assert doc.file_name == "prueba.pdf"
    assert os.path.exists(doc.file_path)
    with open(doc.file_path, "rb") as f:
        stored = f.read()
    assert hashlib.sha256(stored).hexdigest() == doc.hash
    assert bytes(doc.file_content) == stored


def test_duplicate_upload_rejected(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    content = create_pdf_bytes()
    DocumentService.create_document(session, user.id, "A", content, "a.pdf", "application/pdf", settings=settings)
    with pytest.raises(DocumentValidationError):
        DocumentService.create_document(session, user.id, "B", content, "b.pdf", "application/pdf", settings=settings)


def test_request_then_attach_file(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    request = DocumentService.request_document(session, user.id, DocumentType.TRANSCRIPT_REQUEST, "Transcript")
    placeholder = request.hash
    assert request.file_size == 0
    assert len(placeholder) == 64

    content = create_pdf_bytes()
    doc = DocumentService.attach_file(session, request.id, content, "transcript.pdf", "application/pdf", settings)
    assert doc.hash == hashlib.sha256(content).hexdigest()
    assert doc.hash != placeholder
    assert doc.file_size == len(content)


def test_attach_file_unknown_document(session, settings):
    with pytest.raises(DocumentNotFoundError):
        DocumentService.attach_file(session, 999, create_pdf_bytes(), "x.pdf", "application/pdf", settings)


def test_start_review_uses_template_path(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    doc, workflow = create_document_in_review(session, settings, user, ["Dean", "assistant_registrar"])

    assert workflow.step_roles == ["dean", "assistant_registrar"]
    assert workflow.current_step == 0
    assert workflow.total_steps == 2
    assert workflow.is_completed is False
    assert workflow.version == 1
    assert doc.status == DocumentStatus.IN_REVIEW


def test_start_review_twice_rejected(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    doc, _ = create_document_in_review(session, settings, user, ["dean"])
    with pytest.raises(DocumentValidationError):
        DocumentService.start_review(session, doc.id)


def test_start_review_unknown_document(session):
    with pytest.raises(DocumentNotFoundError):
        DocumentService.start_review(session, 12345)


def test_transcript_path_depends_on_graduation(session, settings):
    graduate = create_dummy_user(session, "alumna", UserRole.STUDENT, is_graduated=True)
    current = create_dummy_user(session, "student", UserRole.STUDENT)

    graduate_doc = upload_pdf_obj(session, settings, graduate.id, document_type=DocumentType.TRANSCRIPT_REQUEST)
    current_doc = upload_pdf_obj(session, settings, current.id, document_type=DocumentType.TRANSCRIPT_REQUEST)

    assert DocumentService.resolve_approval_path(session, graduate_doc) == GRADUATE_TRANSCRIPT_PATH
    assert DocumentService.resolve_approval_path(session, current_doc) == STUDENT_TRANSCRIPT_PATH


def test_inactive_template_is_ignored(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    template = create_template(session, ["vice_chancellor"], DocumentType.ACADEMIC_RECORD)
    template.is_active = False
    session.commit()

    doc = upload_pdf_obj(session, settings, user.id, document_type=DocumentType.ACADEMIC_RECORD)
    assert DocumentService.resolve_approval_path(session, doc) == GENERIC_APPROVAL_PATH


def test_pending_for_role(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    doc, _ = create_document_in_review(session, settings, user, ["dean", "assistant_registrar"])
    upload_pdf_obj(session, settings, user.id, "not-in-review.pdf", DocumentType.GRADE_REPORT)

    assert [d.id for d in DocumentService.get_pending_for_role(session, "dean")] == [doc.id]
    assert [d.id for d in DocumentService.get_pending_for_role(session, UserRole.DEAN)] == [doc.id]
    assert DocumentService.get_pending_for_role(session, "assistant_registrar") == []


def test_user_stats(session, settings):
    user = create_dummy_user(session, "student", UserRole.STUDENT)
    create_document_in_review(session, settings, user, ["dean"])
    rejected = upload_pdf_obj(session, settings, user.id, "rejected.pdf")
    rejected.status = DocumentStatus.REJECTED
    session.commit()

    stats = DocumentService.get_user_stats(session, user.id)
    assert stats.total_documents == 2
    assert stats.pending_documents == 1
    assert stats.approved_documents == 0
    assert stats.rejected_documents == 1
    assert len(DocumentService.get_documents_by_user(session, user.id)) == 2
    assert session.query(Document).count() == 2
