import math

import pytest
from PyPDF2 import PdfWriter

from modules.signatures.models.schemas import NormalizedPlacement, SignatureBlock
from modules.signatures.services.placement import PlacementResolver, SignatureLayouts, ensure_page


def letter_writer(pages=1):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    return writer


def test_centered_slot_on_letter_page():
    block = PlacementResolver().from_normalized(letter_writer(), NormalizedPlacement(page=1, x=0.5, y=0.5))
    assert block == SignatureBlock(page=0, x=231, y=368, width=150, height=56)


def test_y_axis_is_flipped():
    block = PlacementResolver().from_normalized(letter_writer(), NormalizedPlacement(x=0.5, y=0.25))
    # 25% from the top is 594pt above the bottom edge
    assert block.y == pytest.approx(594 - 28)


@pytest.mark.parametrize("x, y, expected_x, expected_y", [
    (0.0, 0.0, 0, 736),
    (1.0, 1.0, 462, 0),
    (0.0, 1.0, 0, 0),
    (1.0, 0.0, 462, 736),
])
def test_corner_slots_stay_on_page(x, y, expected_x, expected_y):
    block = PlacementResolver().from_normalized(letter_writer(), NormalizedPlacement(x=x, y=y))
    assert (block.x, block.y) == (expected_x, expected_y)


def test_custom_size_and_defaults():
    resolver = PlacementResolver(default_width=100, default_height=40)
    block = resolver.from_normalized(letter_writer(), NormalizedPlacement(width=200))
    assert (block.width, block.height) == (200, 40)
    assert block.x == 206


def test_missing_page_is_appended():
    writer = letter_writer()
    block = PlacementResolver().from_normalized(writer, NormalizedPlacement(page=3))
    assert block.page == 2
    assert len(writer.pages) == 3
    assert float(writer.pages[2].mediabox.width) == 612
    assert float(writer.pages[2].mediabox.height) == 792


def test_fractional_and_low_pages():
    resolver = PlacementResolver()
    assert resolver.from_normalized(letter_writer(2), NormalizedPlacement(page=2.7)).page == 1
    assert resolver.from_normalized(letter_writer(), NormalizedPlacement(page=0)).page == 0
    assert resolver.from_normalized(letter_writer(), NormalizedPlacement(page=-4)).page == 0


def test_non_finite_coordinates_center():
    placement = NormalizedPlacement(x=math.nan, y=math.inf, page=math.nan)
    assert (placement.page, placement.x, placement.y) == (1, 0.5, 0.5)
    assert NormalizedPlacement(x=2, y=-1).model_dump(include={"x", "y"}) == {"x": 1.0, "y": 0.0}


def test_ensure_page_on_empty_writer_uses_letter():
    writer = PdfWriter()
    ensure_page(writer, 0)
    assert len(writer.pages) == 1
    assert float(writer.pages[0].mediabox.width) == 612


def test_fallback_layout_for_document_type():
    layouts = SignatureLayouts.default()
    assert layouts.block_for("transcript_request", "dean") == SignatureBlock(
        page=0, x=384, y=220, width=150, height=56
    )
    # grade reports have no vice chancellor slot; the default layout supplies one
    assert layouts.block_for("grade_report", "vice_chancellor").x == 384
    assert layouts.block_for("grade_report", "vice_chancellor").y == 110
    assert layouts.block_for("unknown_type", "Dean").x == 48


def test_fallback_layout_missing_role():
    assert SignatureLayouts.default().block_for("other", "student") is None
    assert PlacementResolver().resolve(letter_writer(), "other", "student") is None


def test_resolve_prefers_explicit_slot():
    writer = letter_writer()
    explicit = PlacementResolver().resolve(writer, "transcript_request", "dean", NormalizedPlacement(x=0.5, y=0.5))
    assert (explicit.x, explicit.y) == (231, 368)

    fallback = PlacementResolver().resolve(writer, "transcript_request", "dean")
    assert (fallback.x, fallback.y) == (384, 220)
