from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from modules.documents.models.document import Document, DocumentStatus
from modules.documents.models.verification_log import VerificationLog
from modules.workflow.models.workflow import Workflow, WorkflowAction


class DocumentRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_hash(self, document_hash: str) -> Optional[Document]:
        return (
            self.db.query(Document)
            .options(joinedload(Document.user), joinedload(Document.workflow))
            .filter(Document.hash == document_hash.lower())
            .first()
        )

    def find_in_review(self) -> List[Document]:
        return (
            self.db.query(Document)
            .join(Workflow, Workflow.document_id == Document.id)
            .options(joinedload(Document.workflow))
            .filter(Document.status == DocumentStatus.IN_REVIEW, Workflow.is_completed.is_(False))
            .order_by(Document.created_at)
            .all()
        )

    def find_by_user_id(self, user_id: int) -> List[Document]:
        return (
            self.db.query(Document)
            .filter(Document.user_id == user_id)
            .order_by(Document.created_at.desc())
            .all()
        )

    def last_signed_action(self, workflow_id: int) -> Optional[WorkflowAction]:
        return (
            self.db.query(WorkflowAction)
            .options(joinedload(WorkflowAction.user))
            .filter(WorkflowAction.workflow_id == workflow_id, WorkflowAction.signature.isnot(None))
            .order_by(WorkflowAction.created_at.desc(), WorkflowAction.id.desc())
            .first()
        )

    def save_verification_log(self, log: VerificationLog) -> VerificationLog:
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log
