from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DocumentSummary(BaseModel):
    title: str
    type: str
    student: Optional[str] = None
    issue_date: Optional[datetime] = None
    hash: str
    final_signatory: Optional[str] = None
    status: str


class VerificationResult(BaseModel):
    verified: bool
    document: Optional[DocumentSummary] = None
    message: Optional[str] = None


class UserStats(BaseModel):
    total_documents: int
    pending_documents: int
    approved_documents: int
    rejected_documents: int
