import pytest

from modules.workflow.services.comment_visibility import (
    DecodedComment,
    decode_comment,
    encode_comment,
    filter_comments,
    is_visible_to,
    normalize_targets,
)


def test_targets_round_trip():
    stored = encode_comment("Please re-sign", targets={"dean", "student"})
    decoded = decode_comment(stored)
    assert sorted(decoded.targets) == ["dean", "student"]
    assert decoded.text == "Please re-sign"
    assert is_visible_to(decoded, "dean")
    assert is_visible_to(decoded, "student")
    assert not is_visible_to(decoded, "assistant_registrar")


def test_targets_take_precedence_over_audience():
    stored = encode_comment("note", audience="both", targets=["Dean", " dean ", "registrar"])
    assert stored == "[vis:dean,registrar] note"


@pytest.mark.parametrize("audience", ["student", "next_reviewer", "both"])
def test_audience_round_trip(audience):
    decoded = decode_comment(encode_comment("text", audience=audience))
    assert decoded == DecodedComment(audience=audience, targets=[], text="text")


def test_unknown_audience_is_stored_plain():
    assert encode_comment("text", audience="everyone") == "text"
    assert decode_comment("text") == DecodedComment(text="text")


def test_empty_comment_is_not_stored():
    assert encode_comment("   ") is None
    assert encode_comment(None, audience="both") is None


def test_tag_without_text_is_kept():
    assert encode_comment("", audience="student") == "[aud:student]"
    assert decode_comment("[aud:student]").text == ""


def test_only_leading_tag_is_stripped():
    decoded = decode_comment("  [aud:both] see [aud:student] below")
    assert decoded.audience == "both"
    assert decoded.text == "see [aud:student] below"


def test_unknown_tag_is_text():
    decoded = decode_comment("[aud:everyone] hello")
    assert decoded.audience == "unknown"
    assert decoded.text == "[aud:everyone] hello"


@pytest.mark.parametrize("audience, role, visible", [
    ("both", "student", True),
    ("both", "dean", True),
    ("student", "student", True),
    ("student", "dean", False),
    ("next_reviewer", "dean", True),
    ("next_reviewer", "student", False),
    ("unknown", "dean", False),
    ("unknown", "student", False),
])
def test_audience_visibility(audience, role, visible):
    assert is_visible_to(DecodedComment(audience=audience, text="x"), role) is visible


def test_filter_comments():
    raw = [
        "[aud:student] fix the date",
        "[aud:next_reviewer] checked grades",
        "internal only",
        None,
        "[aud:both]",
        "[vis:student,dean] both of you",
    ]
    assert [c.text for c in filter_comments(raw, "student")] == ["fix the date", "both of you"]
    assert [c.text for c in filter_comments(raw, "Dean")] == ["checked grades", "both of you"]
    assert [c.text for c in filter_comments(raw, "assistant_registrar")] == ["checked grades"]


def test_normalize_targets():
    assert normalize_targets([" Dean", "dean", "", "Student"]) == ["dean", "student"]
    assert normalize_targets(None) == []


@pytest.mark.parametrize("text", ["[aud:both] internal note", "[vis:student] internal note", " [AUD:student]x"])
def test_untagged_text_that_looks_tagged_stays_internal(text):
    stored = encode_comment(text)
    assert stored.startswith("[aud:internal]")

    decoded = decode_comment(stored)
    assert decoded.audience == "unknown"
    assert decoded.targets == []
    assert decoded.text == text.strip()
    assert not is_visible_to(decoded, "student")
    assert not is_visible_to(decoded, "dean")
    assert filter_comments([stored], "student") == []
