from .user import User, UserRole
from .document import Document, DocumentStatus, DocumentType, PDF_MIME_TYPE
from .document_template import DocumentTemplate
from .verification_log import VerificationLog
# Registers the relationship targets of Document
from modules.workflow.models.workflow import Workflow, WorkflowAction, ActionType

__all__ = [
    'User', 'UserRole', 'Document', 'DocumentStatus', 'DocumentType', 'PDF_MIME_TYPE',
    'DocumentTemplate', 'VerificationLog', 'Workflow', 'WorkflowAction', 'ActionType'
]
