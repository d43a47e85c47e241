from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from config import get_settings
from modules.documents.models.document import Document, DocumentType
from modules.documents.models.document_template import DocumentTemplate
from modules.documents.models.user import User
from modules.signatures.services.signature_crypto import SignatureCipher
from modules.workflow.errors import ConcurrentUpdateError
from modules.workflow.models.workflow import ActionType, Workflow, WorkflowAction


class WorkflowRepository:
    """
    Storage used by the workflow engine. Nothing here commits on its own:
    the service commits the action, workflow and document writes together.
    """

    def __init__(self, db_session: Session, cipher: Optional[SignatureCipher] = None):
        self.db = db_session
        self._cipher = cipher

    @property
    def cipher(self) -> SignatureCipher:
        """Built on first use from the configured key."""
        if self._cipher is None:
            self._cipher = SignatureCipher(get_settings().SIGNATURE_ENCRYPTION_KEY)
        return self._cipher

    # Workflows

    def get_workflow(self, workflow_id: int) -> Optional[Workflow]:
        return self.db.get(Workflow, workflow_id)

    def get_workflow_by_document(self, document_id: int) -> Optional[Workflow]:
        return self.db.query(Workflow).filter(Workflow.document_id == document_id).first()

    def create_workflow(self, document_id: int, step_roles: List[str]) -> Workflow:
        workflow = Workflow(
            document_id=document_id,
            step_roles=list(step_roles),
            current_step=0,
            total_steps=len(step_roles),
            is_completed=False,
            version=1,
        )
        self.db.add(workflow)
        self.db.flush()
        return workflow

    def update_workflow(self, workflow_id: int, data: Dict, expected_version: int) -> Workflow:
        """Conditional update; fails when someone else wrote since ``expected_version``."""
        stmt = (
            update(Workflow)
            .where(Workflow.id == workflow_id, Workflow.version == expected_version)
            .values(**data, version=Workflow.version + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentUpdateError(workflow_id, expected_version)

        workflow = self.db.get(Workflow, workflow_id)
        self.db.refresh(workflow)
        return workflow

    # Actions

    def append_workflow_action(
        self,
        workflow_id: int,
        user_id: int,
        actor_role: str,
        action: ActionType,
        step: int,
        comment: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> WorkflowAction:
        record = WorkflowAction(
            workflow_id=workflow_id,
            user_id=user_id,
            actor_role=actor_role,
            action=action,
            step=step,
            comment=comment,
            signature=self.cipher.encrypt(signature),
            created_at=datetime.utcnow(),
        )
        self.db.add(record)
        return record

    def list_actions(self, workflow_id: int) -> List[WorkflowAction]:
        return (
            self.db.query(WorkflowAction)
            .filter(WorkflowAction.workflow_id == workflow_id)
            .order_by(WorkflowAction.created_at, WorkflowAction.id)
            .all()
        )

    def count_role_actions(self, workflow_id: int, role: str) -> int:
        """Review decisions already taken by ``role`` on this workflow."""
        return (
            self.db.query(func.count(WorkflowAction.id))
            .filter(
                WorkflowAction.workflow_id == workflow_id,
                WorkflowAction.actor_role == role,
                WorkflowAction.action != ActionType.UPLOADED,
            )
            .scalar()
        )

    def signature_of(self, action: WorkflowAction) -> Optional[str]:
        return self.cipher.decrypt(action.signature)

    # Documents and templates

    def get_document(self, document_id: int) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def update_document(self, document_id: int, data: Dict) -> Optional[Document]:
        document = self.db.get(Document, document_id)
        if not document:
            return None
        for field, value in data.items():
            setattr(document, field, value)
        document.updated_at = datetime.utcnow()
        return document

    def get_document_template(self, document_type) -> Optional[DocumentTemplate]:
        if not isinstance(document_type, DocumentType):
            try:
                document_type = DocumentType(str(document_type).lower())
            except ValueError:
                return None
        return (
            self.db.query(DocumentTemplate)
            .filter(DocumentTemplate.type == document_type, DocumentTemplate.is_active.is_(True))
            .order_by(DocumentTemplate.id.desc())
            .first()
        )

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
