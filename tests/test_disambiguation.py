import pytest

from pdf_stream_annotator.parsing.disambiguation import resolve_commands
from pdf_stream_annotator.parsing.grammar import GRAMMAR, parse_key_values


def _geometry(match):
    return match.page, match.x, match.y, match.width, match.height


@pytest.mark.parametrize(
    "text, variant",
    [
        ("[HIGHLIGHT 100 200 300 50 2]", "coordinate_first"),
        ("[HIGHLIGHT 2 100 200 300 50]", "page_first"),
        ("[HIGHLIGHT 100 200 300 50]", "implicit_page"),
        ("[HIGHLIGHT: 100, 200, 300, 50, 2]", "colon"),
        ("[HIGHLIGHT x=100 y=200 w=300 h=50 page=2]", "key_value"),
    ],
)
def test_every_highlight_variant_resolves_to_the_same_geometry(text, variant):
    matches = resolve_commands(text, current_page=2)
    assert len(matches) == 1
    assert matches[0].variant == variant
    assert _geometry(matches[0]) == (2, 100, 200, 300, 50)


def test_coordinate_first_when_first_number_is_not_a_plausible_page():
    (match,) = resolve_commands("[HIGHLIGHT 100 200 300 50 1]", current_page=5)
    assert match.variant == "coordinate_first"
    assert _geometry(match) == (1, 100, 200, 300, 50)


def test_small_first_number_is_read_as_page():
    (match,) = resolve_commands("[HIGHLIGHT 1 80 120 400 60]", current_page=3)
    assert match.variant == "page_first"
    assert _geometry(match) == (1, 80, 120, 400, 60)


def test_tall_page_first_reading_falls_through_to_coordinate_first():
    (match,) = resolve_commands("[HIGHLIGHT 2 80 120 40 300]", current_page=1)
    assert match.variant == "coordinate_first"
    assert _geometry(match) == (300, 2, 80, 120, 40)


def test_page_keyword_form():
    (match,) = resolve_commands("[HIGHLIGHT PAGE 3 200 300 250 40]", current_page=1)
    assert _geometry(match) == (3, 200, 300, 250, 40)


def test_zero_page_means_current_page():
    (match,) = resolve_commands("[HIGHLIGHT: 80, 120, 400, 24, 0]", current_page=7)
    assert match.page == 7


def test_color_is_captured():
    (match,) = resolve_commands('[HIGHLIGHT 2 150 250 200 30 color="rgba(255,0,0,0.5)"]', current_page=1)
    assert match.color == "rgba(255,0,0,0.5)"
    (match,) = resolve_commands('[HIGHLIGHT: 150, 250, 200, 30, 2, color="red"]', current_page=1)
    assert match.color == "red"


def test_identical_command_text_is_resolved_once():
    text = "[HIGHLIGHT 1 80 120 400 60] and again [HIGHLIGHT 1 80 120 400 60]"
    assert len(resolve_commands(text, current_page=1)) == 1


def test_matches_are_ordered_by_position():
    text = "[CIRCLE 1 300 400 50] then [HIGHLIGHT 1 80 120 400 60] then [CIRCLE: 10, 20, 30, 1]"
    matches = resolve_commands(text, current_page=1)
    assert [m.kind for m in matches] == ["circle", "highlight", "circle"]
    assert [m.start for m in matches] == sorted(m.start for m in matches)


@pytest.mark.parametrize(
    "text, variant",
    [
        ("[CIRCLE 2 300 400 50]", "page_first"),
        ("[CIRCLE 300 400 50 2]", "coordinate_first"),
        ("[CIRCLE: 300, 400, 50, 2]", "colon"),
        ("[CIRCLE x=300 y=400 r=50 page=2]", "key_value"),
    ],
)
def test_circle_variants(text, variant):
    (match,) = resolve_commands(text, current_page=9)
    assert match.kind == "circle"
    assert match.variant == variant
    assert (match.page, match.x, match.y, match.radius) == (2, 300, 400, 50)


def test_key_value_defaults_fill_missing_fields():
    (match,) = resolve_commands("[HIGHLIGHT y=300]", current_page=2)
    assert _geometry(match) == (2, 80, 300, 420, 60)


def test_key_value_long_names_do_not_shadow_each_other():
    (match,) = resolve_commands("[HIGHLIGHT width=300 height=50 x=10 y=20]", current_page=1)
    assert _geometry(match) == (1, 10, 20, 300, 50)


def test_key_value_body_without_coordinates_is_not_a_command():
    assert parse_key_values("highlight", " the important sentence page=2") is None
    assert resolve_commands("[HIGHLIGHT the important sentence]", current_page=1) == []


def test_rule_table_order():
    highlight = [rule.name for rule in GRAMMAR if rule.kind == "highlight"]
    circle = [rule.name for rule in GRAMMAR if rule.kind == "circle"]
    assert highlight == ["page_first", "coordinate_first", "implicit_page", "colon", "key_value"]
    assert circle == ["page_first", "coordinate_first", "colon", "key_value"]


def test_keyword_is_case_insensitive():
    (match,) = resolve_commands("[highlight 1 80 120 400 60]", current_page=1)
    assert _geometry(match) == (1, 80, 120, 400, 60)
