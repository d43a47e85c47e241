"""
Review comment visibility.

A stored comment may start with one tag that says who can read it:

    [vis:dean,registrar] text   -> only the listed roles
    [aud:student] text          -> the requesting student
    [aud:next_reviewer] text    -> any reviewer (every role except student)
    [aud:both] text             -> everyone
    [aud:internal] text         -> nobody; written when the text itself
                                   starts with something tag-shaped
    text                        -> nobody; audit trail only

Decoding strips at most one leading tag.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

STUDENT_ROLE = "student"

AUDIENCE_STUDENT = "student"
AUDIENCE_NEXT_REVIEWER = "next_reviewer"
AUDIENCE_BOTH = "both"
AUDIENCE_UNKNOWN = "unknown"
AUDIENCE_INTERNAL = "internal"
AUDIENCES = (AUDIENCE_STUDENT, AUDIENCE_NEXT_REVIEWER, AUDIENCE_BOTH)

_LEADING_TAG = re.compile(
    r"^\s*\[(?:vis:(?P<targets>[^\]]+)|aud:(?P<audience>student|next_reviewer|both|internal))\]\s*",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DecodedComment:
    audience: str = AUDIENCE_UNKNOWN
    targets: List[str] = field(default_factory=list)
    text: str = ""


def normalize_targets(targets: Optional[Iterable[str]]) -> List[str]:
    """Lower-case, strip and de-duplicate, keeping first occurrence order."""
    normalized = []
    for target in targets or []:
        role = str(target).strip().lower()
        if role and role not in normalized:
            normalized.append(role)
    return normalized


def encode_comment(
    text: Optional[str],
    audience: Optional[str] = None,
    targets: Optional[Iterable[str]] = None,
) -> Optional[str]:
    text = (text or "").strip()
    roles = normalize_targets(targets)

    if roles:
        tag = f"[vis:{','.join(roles)}]"
    elif audience and audience.strip().lower() in AUDIENCES:
        tag = f"[aud:{audience.strip().lower()}]"
    elif _LEADING_TAG.match(text):
        tag = f"[aud:{AUDIENCE_INTERNAL}]"
    else:
        tag = ""

    stored = f"{tag} {text}".strip()
    return stored or None


def decode_comment(raw: Optional[str]) -> DecodedComment:
    if not raw:
        return DecodedComment()

    match = _LEADING_TAG.match(raw)
    if not match:
        return DecodedComment(text=raw.strip())

    text = raw[match.end():].strip()
    if match.group("targets") is not None:
        return DecodedComment(targets=normalize_targets(match.group("targets").split(",")), text=text)
    audience = match.group("audience").lower()
    if audience == AUDIENCE_INTERNAL:
        audience = AUDIENCE_UNKNOWN
    return DecodedComment(audience=audience, text=text)


def is_visible_to(comment: DecodedComment, viewer_role: str) -> bool:
    role = (viewer_role or "").strip().lower()
    if comment.targets:
        return role in comment.targets
    if comment.audience == AUDIENCE_BOTH:
        return True
    if comment.audience == AUDIENCE_STUDENT:
        return role == STUDENT_ROLE
    if comment.audience == AUDIENCE_NEXT_REVIEWER:
        return bool(role) and role != STUDENT_ROLE
    return False


def filter_comments(raw_comments: Iterable[Optional[str]], viewer_role: str) -> List[DecodedComment]:
    """Decoded comments ``viewer_role`` may read; empty ones are dropped."""
    visible = []
    for raw in raw_comments:
        decoded = decode_comment(raw)
        if decoded.text and is_visible_to(decoded, viewer_role):
            visible.append(decoded)
    return visible
