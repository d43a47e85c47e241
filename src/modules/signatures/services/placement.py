"""
Placement resolution: turn a template slot (or the built-in layout) into an
absolute rectangle on a concrete PDF page.

Template slots are normalized (x/y in [0, 1], measured from the top-left
corner of a 1-based page). PDF user space starts at the bottom-left, so the
Y axis is flipped during conversion.
"""
import logging
import math
from typing import Dict, Iterable, Mapping, Optional

from PyPDF2 import PdfWriter
from reportlab.lib.pagesizes import letter

from modules.signatures.models.schemas import NormalizedPlacement, SignatureBlock

logger = logging.getLogger(__name__)

LETTER_WIDTH, LETTER_HEIGHT = letter
DEFAULT_SIGNATURE_WIDTH = 150.0
DEFAULT_SIGNATURE_HEIGHT = 56.0

COLUMN_WIDTH = 150.0
COLUMN_GAP = 18.0
LEFT_MARGIN = 48.0

DEFAULT_LAYOUT = "default"


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def _type_key(document_type) -> str:
    return str(getattr(document_type, "value", document_type) or DEFAULT_LAYOUT).lower()


def _row(start_y: float, roles: Iterable[str]) -> Dict[str, SignatureBlock]:
    """Lay roles out left to right; columns past the right margin are dropped."""
    blocks = {}
    for index, role in enumerate(roles):
        x = LEFT_MARGIN + index * (COLUMN_WIDTH + COLUMN_GAP)
        if x + COLUMN_WIDTH <= LETTER_WIDTH - LEFT_MARGIN:
            blocks[role] = SignatureBlock(
                page=0, x=x, y=start_y, width=COLUMN_WIDTH, height=DEFAULT_SIGNATURE_HEIGHT
            )
    return blocks


class SignatureLayouts:
    """Fallback slot table keyed by document type then reviewer role."""

    def __init__(self, layouts: Mapping[str, Mapping[str, SignatureBlock]]):
        self._layouts = {
            _type_key(doc_type): {role.lower(): block for role, block in blocks.items()}
            for doc_type, blocks in layouts.items()
        }

    def block_for(self, document_type, role: str) -> Optional[SignatureBlock]:
        role = role.lower()
        default = self._layouts.get(DEFAULT_LAYOUT, {})
        blocks = self._layouts.get(_type_key(document_type), default)
        block = blocks.get(role) or default.get(role)
        return block.model_copy() if block else None

    @classmethod
    def default(cls) -> "SignatureLayouts":
        standard = {
            **_row(190, ["course_unit", "academic_staff", "department_head"]),
            **_row(110, ["dean", "assistant_registrar", "vice_chancellor"]),
        }
        transcript = {
            **_row(220, ["academic_staff", "department_head", "dean"]),
            **_row(150, ["assistant_registrar", "vice_chancellor"]),
            **_row(80, ["course_unit"]),
        }
        enrollment = {
            **_row(210, ["course_unit", "academic_staff"]),
            **_row(140, ["department_head", "dean"]),
            **_row(70, ["assistant_registrar"]),
        }
        grade_report = {
            **_row(160, ["academic_staff", "department_head", "dean"]),
            "assistant_registrar": SignatureBlock(
                page=0, x=LEFT_MARGIN, y=90, width=COLUMN_WIDTH, height=DEFAULT_SIGNATURE_HEIGHT
            ),
        }
        return cls({
            DEFAULT_LAYOUT: standard,
            "transcript_request": transcript,
            "enrollment_verification": enrollment,
            "grade_report": grade_report,
            "academic_record": standard,
            "certificate_verification": enrollment,
            "letter_of_recommendation": grade_report,
            "degree_verification": enrollment,
            "other": standard,
        })


def ensure_page(writer: PdfWriter, page_index: int) -> None:
    """Append blank pages until ``page_index`` exists."""
    while len(writer.pages) <= page_index:
        if len(writer.pages):
            # Same size as the current last page
            writer.add_blank_page()
        else:
            writer.add_blank_page(width=LETTER_WIDTH, height=LETTER_HEIGHT)


class PlacementResolver:

    def __init__(
        self,
        layouts: Optional[SignatureLayouts] = None,
        default_width: float = DEFAULT_SIGNATURE_WIDTH,
        default_height: float = DEFAULT_SIGNATURE_HEIGHT,
    ):
        self.layouts = layouts or SignatureLayouts.default()
        self.default_width = default_width
        self.default_height = default_height

    def from_normalized(self, writer: PdfWriter, placement: NormalizedPlacement) -> SignatureBlock:
        page_index = max(0, math.floor(placement.page - 1))
        ensure_page(writer, page_index)

        page = writer.pages[page_index]
        page_width = float(page.mediabox.width)
        page_height = float(page.mediabox.height)
        width = placement.width or self.default_width
        height = placement.height or self.default_height

        center_x = placement.x * page_width
        center_y = page_height * (1 - placement.y)
        return SignatureBlock(
            page=page_index,
            x=clamp(center_x - width / 2, 0, page_width - width),
            y=clamp(center_y - height / 2, 0, page_height - height),
            width=width,
            height=height,
        )

    def resolve(
        self,
        writer: PdfWriter,
        document_type,
        role: str,
        explicit: Optional[NormalizedPlacement] = None,
    ) -> Optional[SignatureBlock]:
        """
        Absolute rectangle for ``role`` on ``writer``'s document, or None when
        neither the template nor the fallback layout has a slot for it.
        """
        if explicit is not None:
            return self.from_normalized(writer, explicit)

        block = self.layouts.block_for(document_type, role)
        if block is None:
            logger.debug("No fallback slot for role %s on %s", role, _type_key(document_type))
            return None
        ensure_page(writer, block.page)
        return block
