from .document_service import DocumentService
from .template_service import TemplateService
from .verification_service import VerificationService

__all__ = ['DocumentService', 'TemplateService', 'VerificationService']
