import logging
import re
from typing import Optional

from modules.documents.errors import InvalidHashFormatError
from modules.documents.models.document import DocumentStatus
from modules.documents.models.schemas import DocumentSummary, VerificationResult
from modules.documents.models.verification_log import VerificationLog
from modules.documents.repositories.document_repository import DocumentRepository

logger = logging.getLogger(__name__)

HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class VerificationService:
    """Public verification of issued documents by content hash."""

    def __init__(self, repository: DocumentRepository):
        self.repository = repository

    @staticmethod
    def validate_hash(value) -> str:
        if not isinstance(value, str) or not HASH_PATTERN.match(value):
            raise InvalidHashFormatError(value)
        return value.lower()

    def verify(self, document_hash, ip_address: Optional[str] = None,
               user_agent: Optional[str] = None) -> VerificationResult:
        """
        Only an approved document verifies. Every well-formed attempt is
        written to the verification log; malformed hashes are rejected
        before lookup and are not logged.
        """
        normalized = self.validate_hash(document_hash)

        document = self.repository.find_by_hash(normalized)
        verified = document is not None and document.status == DocumentStatus.APPROVED

        self.repository.save_verification_log(VerificationLog(
            document_hash=normalized,
            ip_address=ip_address,
            user_agent=user_agent,
            is_verified=verified,
        ))
        logger.info("Verification of %s from %s: %s", normalized, ip_address or "unknown",
                    "verified" if verified else "not verified")

        if not verified:
            return VerificationResult(verified=False, message="Document not found or not verified")

        return VerificationResult(verified=True, document=self._summary(document))

    def _summary(self, document) -> DocumentSummary:
        signatory = None
        if document.workflow is not None:
            last_signed = self.repository.last_signed_action(document.workflow.id)
            if last_signed is not None and last_signed.user is not None:
                signatory = last_signed.user.full_name

        return DocumentSummary(
            title=document.title,
            type=document.type.value,
            student=document.user.full_name if document.user else None,
            issue_date=document.created_at,
            hash=document.hash,
            final_signatory=signatory,
            status=document.status.value,
        )
