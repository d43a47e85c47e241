import math
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class NormalizedPlacement(BaseModel):
    """
    Template slot at stamp time: 1-based page, x/y as fractions of the page
    measured from the top-left. Lenient; templates are checked strictly when saved.
    """
    page: float = 1
    x: float = 0.5
    y: float = 0.5
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)

    @field_validator("x", "y")
    @classmethod
    def finite_or_center(cls, v: float) -> float:
        # Non-finite coordinates fall back to the page center
        if v is None or not math.isfinite(v):
            return 0.5
        return min(max(v, 0.0), 1.0)

    @field_validator("page")
    @classmethod
    def finite_page(cls, v: float) -> float:
        if v is None or not math.isfinite(v):
            return 1
        return v


class SignatureBlock(BaseModel):
    """Absolute rectangle in PDF points, origin bottom-left, 0-based page index."""
    page: int = 0
    x: float
    y: float
    width: float
    height: float
    label: Optional[str] = None

    def as_coordinates(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class ParsedSignature(BaseModel):
    mime_type: str
    data: bytes


class StampResult(BaseModel):
    content: bytes
    hash: str
    metadata: Dict[str, Any]
    block: SignatureBlock
