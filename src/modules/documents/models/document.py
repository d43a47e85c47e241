from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, LargeBinary, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from database import Base

class DocumentStatus(PyEnum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"

class DocumentType(PyEnum):
    TRANSCRIPT_REQUEST = "transcript_request"
    ENROLLMENT_VERIFICATION = "enrollment_verification"
    GRADE_REPORT = "grade_report"
    CERTIFICATE_VERIFICATION = "certificate_verification"
    LETTER_OF_RECOMMENDATION = "letter_of_recommendation"
    ACADEMIC_RECORD = "academic_record"
    DEGREE_VERIFICATION = "degree_verification"
    OTHER = "other"

PDF_MIME_TYPE = "application/pdf"

class Document(Base):
    __tablename__ = 'documents'

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(DocumentType), nullable=False, default=DocumentType.OTHER)
    file_name = Column(String, nullable=False)
    # Empty for requests that have no file yet
    file_path = Column(String, nullable=False, default="")
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=False, default=PDF_MIME_TYPE)
    hash = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.PENDING)
    file_content = Column(LargeBinary, nullable=True)
    file_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    user = relationship("User", back_populates="documents")

    workflow = relationship("Workflow", back_populates="document", uselist=False, cascade="all, delete-orphan")

    @property
    def is_pdf(self) -> bool:
        return (self.mime_type or "").lower() == PDF_MIME_TYPE
