import io
import logging
import math
from typing import Dict, List, Optional

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError, PyPdfError
from sqlalchemy.orm import Session

from modules.documents.errors import DocumentNotFoundError, TemplateValidationError
from modules.documents.models.document import DocumentType
from modules.documents.models.document_template import DocumentTemplate

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = [
    {
        "name": "Transcript Request",
        "type": DocumentType.TRANSCRIPT_REQUEST,
        "description": "Request for official academic transcript",
        "approval_path": ["academic_staff", "dean", "assistant_registrar"],
    },
    {
        "name": "Enrollment Verification",
        "type": DocumentType.ENROLLMENT_VERIFICATION,
        "description": "Verification of current enrollment status",
        "approval_path": ["academic_staff", "department_head", "dean"],
    },
    {
        "name": "Grade Report",
        "type": DocumentType.GRADE_REPORT,
        "description": "Request for detailed grade report",
        "approval_path": ["academic_staff", "department_head"],
    },
    {
        "name": "Certificate Verification",
        "type": DocumentType.CERTIFICATE_VERIFICATION,
        "description": "Verification of academic certificates",
        "approval_path": ["academic_staff", "dean", "assistant_registrar"],
    },
    {
        "name": "Letter of Recommendation",
        "type": DocumentType.LETTER_OF_RECOMMENDATION,
        "description": "Request for academic recommendation letter",
        "approval_path": ["academic_staff", "department_head", "dean"],
    },
    {
        "name": "Degree Verification",
        "type": DocumentType.DEGREE_VERIFICATION,
        "description": "Verification of degree completion",
        "approval_path": ["academic_staff", "dean", "vice_chancellor", "assistant_registrar"],
    },
]


def _number(slot: Dict, key: str) -> Optional[float]:
    value = slot.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise TemplateValidationError(f"Placement field '{key}' must be a finite number")
    return float(value)


class TemplateService:

    @staticmethod
    def validate_placements(
        approval_path: List[str],
        signature_placements: Dict[str, List[Dict]],
        page_count: Optional[int] = None,
    ) -> Dict[str, List[Dict]]:
        """
        Normalized copy of ``signature_placements``. Every approval role needs
        at least one slot with a 1-based page and x/y inside [0, 1].
        """
        if not approval_path:
            raise TemplateValidationError("The approval path must contain at least one role")

        normalized: Dict[str, List[Dict]] = {}
        for role, slots in (signature_placements or {}).items():
            if not isinstance(slots, list):
                raise TemplateValidationError(f"Placements for '{role}' must be a list")
            cleaned = []
            for slot in slots:
                if not isinstance(slot, dict):
                    raise TemplateValidationError(f"Invalid placement for '{role}'")
                page = _number(slot, "page")
                if page is None:
                    page = 1
                x, y = _number(slot, "x"), _number(slot, "y")
                if x is None or y is None or not (0 <= x <= 1 and 0 <= y <= 1):
                    raise TemplateValidationError(f"Placement for '{role}' must have x and y in [0, 1]")
                if page < 1 or (page_count and page > page_count):
                    raise TemplateValidationError(f"Placement page {page:g} for '{role}' is out of range")
                entry = {"page": int(page), "x": x, "y": y}
                for key in ("width", "height"):
                    size = _number(slot, key)
                    if size is not None:
                        if size <= 0:
                            raise TemplateValidationError(f"Placement {key} for '{role}' must be positive")
                        entry[key] = size
                cleaned.append(entry)
            normalized[role.lower()] = cleaned

        missing = [role for role in approval_path if not normalized.get(role.lower())]
        if missing:
            raise TemplateValidationError(f"Missing signature placements for: {', '.join(missing)}")
        return normalized

    @staticmethod
    def is_usable(template: DocumentTemplate) -> bool:
        placements = template.signature_placements or {}
        return bool(template.approval_path) and all(
            placements.get(role.lower()) for role in template.approval_path
        )

    @staticmethod
    def page_count(template_content: bytes) -> int:
        try:
            return len(PdfReader(io.BytesIO(template_content)).pages)
        except (PdfReadError, PyPdfError, ValueError) as e:
            raise TemplateValidationError("Template file is not a readable PDF") from e

    @staticmethod
    def create_template(
        session: Session,
        name: str,
        document_type: DocumentType,
        approval_path: List[str],
        signature_placements: Dict[str, List[Dict]],
        description: Optional[str] = None,
        required_roles: Optional[List[str]] = None,
        template_content: Optional[bytes] = None,
        template_file_path: Optional[str] = None,
    ) -> DocumentTemplate:
        page_count = TemplateService.page_count(template_content) if template_content else None
        placements = TemplateService.validate_placements(approval_path, signature_placements, page_count)

        template = DocumentTemplate(
            name=name,
            type=document_type,
            description=description,
            approval_path=[role.lower() for role in approval_path],
            required_roles=list(required_roles or ["student"]),
            template_file_path=template_file_path,
            template_page_count=page_count,
            signature_placements=placements,
            is_active=True,
        )
        session.add(template)
        session.commit()
        logger.info("Template %s created for %s", template.id, document_type.value)
        return template

    @staticmethod
    def update_template(session: Session, template_id: int, **changes) -> DocumentTemplate:
        """Admin edit; placements are re-validated against the resulting approval path."""
        template = session.get(DocumentTemplate, template_id)
        if not template:
            raise DocumentNotFoundError(f"Template {template_id} not found")

        approval_path = changes.get("approval_path", template.approval_path)
        placements = changes.get("signature_placements", template.signature_placements)
        if "approval_path" in changes or "signature_placements" in changes:
            changes["signature_placements"] = TemplateService.validate_placements(
                approval_path, placements, template.template_page_count
            )
            changes["approval_path"] = [role.lower() for role in approval_path]

        for field, value in changes.items():
            if not hasattr(DocumentTemplate, field):
                raise TemplateValidationError(f"Unknown template field: {field}")
            setattr(template, field, value)
        session.commit()
        return template

    @staticmethod
    def seed_default_templates(session: Session) -> List[DocumentTemplate]:
        """
        Install the built-in templates for types that have none. They carry
        no explicit placements; signing uses the fallback layout.
        """
        existing = {t.type for t in session.query(DocumentTemplate).all()}
        created = []
        for data in DEFAULT_TEMPLATES:
            if data["type"] in existing:
                continue
            template = DocumentTemplate(
                name=data["name"],
                type=data["type"],
                description=data["description"],
                approval_path=list(data["approval_path"]),
                required_roles=["student"],
                signature_placements={},
                is_active=True,
            )
            session.add(template)
            created.append(template)
        session.commit()
        for template in created:
            logger.info("Created default template: %s", template.name)
        return created
