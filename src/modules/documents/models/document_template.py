from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Boolean, JSON
from datetime import datetime
from database import Base
from modules.documents.models.document import DocumentType

class DocumentTemplate(Base):
    """Admin-configured approval path and signature slots for a document type."""
    __tablename__ = 'document_templates'

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(Enum(DocumentType), nullable=False, index=True)
    description = Column(Text, nullable=True)
    approval_path = Column(JSON, nullable=False, default=list)
    required_roles = Column(JSON, nullable=False, default=list)
    template_file_path = Column(String, nullable=True)
    template_page_count = Column(Integer, nullable=True)
    # {role: [{page, x, y, width?, height?}, ...]}, x/y normalized, page 1-based
    signature_placements = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def placements_for(self, role: str) -> list[dict]:
        placements = self.signature_placements or {}
        return list(placements.get(role.lower(), []))
