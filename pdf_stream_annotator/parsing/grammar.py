"""Bracket command grammar as an ordered rule table.

The disambiguation engine walks ``GRAMMAR`` top to bottom; the first rule that
matches a bracket substring and accepts its values owns it. Keeping the order
and the acceptance predicates here makes the page-first vs coordinate-first
tie-break something you can read and test directly.
"""
import re
from typing import Callable, Dict, NamedTuple, Optional, Pattern, Tuple

# Largest first number still read as a page number in the page-first forms
MAX_PLAUSIBLE_PAGE = 50
# Page-first highlights taller than this multiple of their width are re-read coordinate-first
MAX_HEIGHT_TO_WIDTH = 3

# Values used by the key=value form when a key is missing (page falls back to the page in view)
KEY_VALUE_DEFAULTS = {
    "highlight": {"x": 80, "y": 200, "width": 420, "height": 60},
    "circle": {"x": 200, "y": 300, "radius": 40},
}
# At least one of these keys must be present for a key=value body to count
KEY_VALUE_REQUIRED = {
    "highlight": {"x", "y", "width", "height"},
    "circle": {"x", "y", "radius"},
}
_KEY_ALIASES = {"w": "width", "h": "height", "r": "radius"}

_NUMBER = r"(\d+)"
_SPACED_COLOR = r'(?:\s+color\s*=\s*"(?P<color>[^"]+)")?'
_COLON_COLOR = r'(?:\s*,\s*color\s*=\s*"(?P<color>[^"]+)")?'

_KV_NUMBER = re.compile(r"\b(x|y|w|width|h|height|r|radius|page)\s*=\s*(\d+)", re.IGNORECASE)
_KV_COLOR = re.compile(r'\bcolor\s*=\s*"([^"\]]+)"', re.IGNORECASE)


class GrammarRule(NamedTuple):
    name: str
    kind: str                       # "highlight" | "circle"
    pattern: Pattern
    fields: Tuple[str, ...]         # numeric capture groups in order; empty for key=value
    accept: Optional[Callable[[Dict[str, int]], bool]] = None


def _spaced(keyword: str, count: int, page_prefix: bool = False) -> Pattern:
    prefix = r"(?:PAGE\s+)?" if page_prefix else ""
    numbers = r"\s+".join([_NUMBER] * count)
    return re.compile(
        r"\[\s*" + keyword + r"\s+" + prefix + numbers + _SPACED_COLOR + r"\s*\]",
        re.IGNORECASE,
    )


def _colon(keyword: str, count: int) -> Pattern:
    numbers = r"\s*,\s*".join([_NUMBER] * count)
    return re.compile(r"\[\s*" + keyword + r"\s*:\s*" + numbers + _COLON_COLOR + r"\s*\]", re.IGNORECASE)


def _key_value(keyword: str) -> Pattern:
    return re.compile(r"\[\s*" + keyword + r"([^\]]+)\]", re.IGNORECASE)


def plausible_page_first_highlight(values: Dict[str, int]) -> bool:
    return values["page"] <= MAX_PLAUSIBLE_PAGE and values["height"] <= values["width"] * MAX_HEIGHT_TO_WIDTH


def plausible_page_first_circle(values: Dict[str, int]) -> bool:
    return values["page"] <= MAX_PLAUSIBLE_PAGE


HIGHLIGHT_RULES = (
    GrammarRule("page_first", "highlight", _spaced("HIGHLIGHT", 5, page_prefix=True),
                ("page", "x", "y", "width", "height"), plausible_page_first_highlight),
    GrammarRule("coordinate_first", "highlight", _spaced("HIGHLIGHT", 5),
                ("x", "y", "width", "height", "page")),
    GrammarRule("implicit_page", "highlight", _spaced("HIGHLIGHT", 4),
                ("x", "y", "width", "height")),
    GrammarRule("colon", "highlight", _colon("HIGHLIGHT", 5),
                ("x", "y", "width", "height", "page")),
    GrammarRule("key_value", "highlight", _key_value("HIGHLIGHT"), ()),
)

CIRCLE_RULES = (
    GrammarRule("page_first", "circle", _spaced("CIRCLE", 4, page_prefix=True),
                ("page", "x", "y", "radius"), plausible_page_first_circle),
    GrammarRule("coordinate_first", "circle", _spaced("CIRCLE", 4),
                ("x", "y", "radius", "page")),
    GrammarRule("colon", "circle", _colon("CIRCLE", 4),
                ("x", "y", "radius", "page")),
    GrammarRule("key_value", "circle", _key_value("CIRCLE"), ()),
)

GRAMMAR: Tuple[GrammarRule, ...] = HIGHLIGHT_RULES + CIRCLE_RULES


def parse_key_values(kind: str, body: str) -> Optional[Dict[str, int]]:
    """Read ``x=.. y=.. w=.. h=.. page=..`` style arguments.

    Returns None when none of the coordinate keys for ``kind`` is present.
    Later duplicates of a key are ignored.
    """
    found: Dict[str, int] = {}
    for key, number in _KV_NUMBER.findall(body):
        key = _KEY_ALIASES.get(key.lower(), key.lower())
        found.setdefault(key, int(number))
    if not KEY_VALUE_REQUIRED[kind] & set(found):
        return None
    values = dict(KEY_VALUE_DEFAULTS[kind])
    values.update({k: v for k, v in found.items() if k in values or k == "page"})
    return values


def read_values(rule: GrammarRule, match, current_page: int) -> Optional[Tuple[Dict[str, int], Optional[str]]]:
    """Extract (numeric values, color) for a rule match; None if the body is not a command.

    A missing or zero page resolves to the page currently in view.
    """
    if rule.fields:
        numbers = match.groups()[: len(rule.fields)]
        values = {name: int(number) for name, number in zip(rule.fields, numbers)}
        color = match.group("color")
    else:
        body = match.group(1)
        values = parse_key_values(rule.kind, body)
        if values is None:
            return None
        color_match = _KV_COLOR.search(body)
        color = color_match.group(1) if color_match else None
    if not values.get("page"):
        values["page"] = current_page
    return values, color
