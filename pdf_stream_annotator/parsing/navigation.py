import re
from typing import Callable, Dict, Tuple

from pdf_stream_annotator.core.types import NavigationCue

# "[LAST PAGE]" target is current + this; the consumer clamps it to the real page count
LAST_PAGE_OFFSET = 9999

BRACKET_DELAY_MS = 400
PHRASE_DELAY_MS = 500

_TARGETS: Dict[str, Callable[[int, re.Match], int]] = {
    "goto": lambda current, m: int(m.group(1)),
    "next": lambda current, m: current + 1,
    "prev": lambda current, m: current - 1,
    "first": lambda current, m: 1,
    "last": lambda current, m: current + LAST_PAGE_OFFSET,
}

# Explicit bracket commands first, then natural language; first hit wins
_RULES: Tuple[Tuple[re.Pattern, str, int], ...] = (
    (re.compile(r"\[\s*go\s+to\s+page\s+(\d+)\s*\]", re.I), "goto", BRACKET_DELAY_MS),
    (re.compile(r"\[\s*next\s+page\s*\]", re.I), "next", BRACKET_DELAY_MS),
    (re.compile(r"\[\s*prev(?:ious)?\s+page\s*\]", re.I), "prev", BRACKET_DELAY_MS),
    (re.compile(r"\[\s*first\s+page\s*\]", re.I), "first", BRACKET_DELAY_MS),
    (re.compile(r"\[\s*last\s+page\s*\]", re.I), "last", BRACKET_DELAY_MS),
    (re.compile(r"\b(?:go to|turn to|navigate to|show|open|jump to)\s+page\s+(\d+)", re.I), "goto", PHRASE_DELAY_MS),
    (re.compile(r"\bnext page\b", re.I), "next", PHRASE_DELAY_MS),
    (re.compile(r"\b(?:prev|previous) page\b", re.I), "prev", PHRASE_DELAY_MS),
    (re.compile(r"\bfirst page\b", re.I), "first", BRACKET_DELAY_MS),
    (re.compile(r"\blast page\b", re.I), "last", BRACKET_DELAY_MS),
)

NO_NAVIGATION = NavigationCue(targetPage=None, delayMs=0, hasNavigation=False)


def extract_navigation(text: str, current_page: int) -> NavigationCue:
    """Find the highest-priority page navigation intent in ``text``.

    ``delayMs`` tells the consumer how long to wait for rendering to settle
    before switching pages; nothing is scheduled here.
    """
    for pattern, action, delay_ms in _RULES:
        match = pattern.search(text)
        if match:
            return NavigationCue(
                targetPage=_TARGETS[action](current_page, match),
                delayMs=delay_ms,
                hasNavigation=True,
            )
    return NavigationCue(**NO_NAVIGATION)
