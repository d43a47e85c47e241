"""
Signature stamping: draw a reviewer's signature image onto the document PDF
and recompute the document hash.

The stamper never touches storage. It returns the new bytes, hash and
metadata; the workflow service persists them together with the transition.
"""
import base64
import binascii
import copy
import hashlib
import io
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from PIL import Image, UnidentifiedImageError
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError, PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from modules.signatures.errors import (
    InvalidSignatureFormatError,
    NoPlacementForRoleError,
    SourceUnavailableError,
    StampingError,
)
from modules.signatures.models.schemas import (
    NormalizedPlacement,
    ParsedSignature,
    SignatureBlock,
    StampResult,
)
from modules.signatures.services.placement import PlacementResolver

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)$", re.DOTALL)
SUPPORTED_MIME_TYPES = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
}
PLACEMENTS_KEY = "signaturePlacements"


def is_image_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:image")


def parse_signature_data_uri(value: str) -> ParsedSignature:
    """Decode a base64 PNG/JPEG data URI or raise InvalidSignatureFormatError."""
    match = DATA_URI_PATTERN.match(value or "")
    if not match:
        raise InvalidSignatureFormatError("Signature must be a base64 data URI")

    mime_type = match.group("mime").strip().lower()
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise InvalidSignatureFormatError(f"Unsupported signature image type: {mime_type}")

    try:
        data = base64.b64decode(match.group("data").strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidSignatureFormatError("Signature data is not valid base64") from e
    if not data:
        raise InvalidSignatureFormatError("Signature data is empty")

    return ParsedSignature(mime_type=mime_type, data=data)


def load_document_bytes(document) -> bytes:
    """
    Current content of a document. The stored content is authoritative; the
    on-disk mirror is only used when it matches the recorded hash.
    """
    if document.file_content:
        return bytes(document.file_content)

    if document.file_path:
        try:
            with open(document.file_path, "rb") as f:
                content = f.read()
        except OSError:
            logger.debug("Stored file %s unreadable", document.file_path)
        else:
            if hashlib.sha256(content).hexdigest() == (document.hash or "").lower():
                return content
            logger.warning("Stored file %s does not match document %s hash", document.file_path, document.id)

    raise SourceUnavailableError(f"No readable content for document {document.id}")


def build_placement_metadata(
    metadata: Optional[Dict[str, Any]],
    role: str,
    block: SignatureBlock,
    signed_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Copy of ``metadata`` where ``role``'s placement record is replaced."""
    updated = copy.deepcopy(metadata) if isinstance(metadata, dict) else {}
    placements = updated.get(PLACEMENTS_KEY)
    if not isinstance(placements, list):
        placements = []

    placements = [p for p in placements if not (isinstance(p, dict) and p.get("role") == role)]
    placements.append({
        "role": role,
        "page": block.page,
        "coordinates": block.as_coordinates(),
        "signedAt": (signed_at or datetime.now(timezone.utc)).isoformat(),
    })
    updated[PLACEMENTS_KEY] = placements
    return updated


def fit_image(block: SignatureBlock, image_width: float, image_height: float):
    """Uniformly scale the image into the block and center it; returns x, y, w, h."""
    scale = min(block.width / image_width, block.height / image_height) or 1
    draw_width = image_width * scale
    draw_height = image_height * scale
    draw_x = block.x + (block.width - draw_width) / 2
    draw_y = block.y + (block.height - draw_height) / 2
    return draw_x, draw_y, draw_width, draw_height


class SignatureStamper:

    def __init__(self, resolver: Optional[PlacementResolver] = None, opacity: float = 0.95):
        self.resolver = resolver or PlacementResolver()
        self.opacity = opacity

    def stamp(
        self,
        document,
        role: str,
        signature_data_uri: str,
        placement: Optional[NormalizedPlacement] = None,
    ) -> StampResult:
        """
        Embed the signature for ``role`` and return the re-serialized PDF.

        Raises InvalidSignatureFormatError, SourceUnavailableError,
        NoPlacementForRoleError or StampingError.
        """
        signature = parse_signature_data_uri(signature_data_uri)
        image = self._open_image(signature)

        source = load_document_bytes(document)
        try:
            reader = PdfReader(io.BytesIO(source))
            writer = PdfWriter()
            for page in reader.pages:
                writer.add_page(page)
        except (PdfReadError, PyPdfError, ValueError, KeyError, TypeError) as e:
            raise SourceUnavailableError(f"Document {document.id} is not a readable PDF") from e

        block = self.resolver.resolve(writer, document.type, role, placement)
        if block is None:
            raise NoPlacementForRoleError(getattr(document.type, "value", document.type), role)

        try:
            page = writer.pages[block.page]
            overlay = self._render_overlay(
                float(page.mediabox.width), float(page.mediabox.height), image, block
            )
            page.merge_page(PdfReader(io.BytesIO(overlay)).pages[0])

            out = io.BytesIO()
            writer.write(out)
        except (OSError, ValueError, KeyError, TypeError, PyPdfError, Image.DecompressionBombError) as e:
            raise StampingError(f"Could not stamp document {document.id}: {e}") from e

        content = out.getvalue()
        return StampResult(
            content=content,
            hash=hashlib.sha256(content).hexdigest(),
            metadata=build_placement_metadata(document.file_metadata, role, block),
            block=block,
        )

    @staticmethod
    def _open_image(signature: ParsedSignature) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(signature.data))
            image.load()
        except Image.DecompressionBombError as e:
            raise InvalidSignatureFormatError(f"Signature image is too large: {e}") from e
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise InvalidSignatureFormatError("Signature image could not be decoded") from e
        if image.format != SUPPORTED_MIME_TYPES[signature.mime_type]:
            raise InvalidSignatureFormatError(
                f"Signature declared as {signature.mime_type} but contains {image.format}"
            )
        if not image.width or not image.height:
            raise InvalidSignatureFormatError("Signature image has no pixels")
        return image

    def _render_overlay(self, page_width: float, page_height: float,
                        image: Image.Image, block: SignatureBlock) -> bytes:
        x, y, width, height = fit_image(block, image.width, image.height)
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA")

        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=(page_width, page_height))
        c.setFillAlpha(self.opacity)
        c.drawImage(ImageReader(image), x, y, width=width, height=height, mask="auto")
        c.showPage()
        c.save()
        return buf.getvalue()
