"""Locate bracket commands in streamed prose.

Fragments arrive one at a time, so a command may be cut anywhere, e.g.
``"...[HIGH"`` followed by ``"LIGHT 1 100 200 300 50]..."``. ``recognize``
takes the carry-over from the previous call, scans everything up to the last
unterminated command bracket, and hands that bracket back as the new
carry-over. Only closed brackets ever become matches.
"""
import re
from typing import List, NamedTuple, Tuple

from pdf_stream_annotator.core.config import MAX_PENDING_CHARS
from pdf_stream_annotator.core.types import CommandMatch
from pdf_stream_annotator.parsing.disambiguation import resolve_commands

ANNOTATION_KEYWORDS = ("HIGHLIGHT", "CIRCLE")
NAVIGATION_KEYWORDS = ("GO TO PAGE", "NEXT PAGE", "PREV PAGE", "PREVIOUS PAGE", "FIRST PAGE", "LAST PAGE")

_MARKER = re.compile(r"HIGHLIGHT|CIRCLE", re.IGNORECASE)
_GLUED_DIGIT = re.compile(r"(\[\s*(?:HIGHLIGHT|CIRCLE))(\d)", re.IGNORECASE)
_ANNOTATION_BRACKET = re.compile(r"\[\s*(?:HIGHLIGHT|CIRCLE)[^\]]*\]", re.IGNORECASE)
_NAVIGATION_BRACKET = re.compile(
    r"\[\s*(?:GO\s+TO\s+PAGE\s*\d*|NEXT\s+PAGE|PREV(?:IOUS)?\s+PAGE|FIRST\s+PAGE|LAST\s+PAGE)\s*\]",
    re.IGNORECASE,
)
_SPACE_RUN = re.compile(r"[ \t]{2,}")


class Recognition(NamedTuple):
    text: str                   # prose with command brackets removed
    source: str                 # the text that was scanned (carry-over included)
    matches: List[CommandMatch]
    had_commands: bool          # a HIGHLIGHT/CIRCLE bracket was present, usable or not
    pending: str                # unterminated bracket to prepend to the next fragment


def _starts_like_command(body: str) -> bool:
    head = " ".join(body.split()).upper()
    if not head:
        return True
    for keyword in ANNOTATION_KEYWORDS + NAVIGATION_KEYWORDS:
        if keyword.startswith(head) or head.startswith(keyword):
            return True
    return False


def split_pending(text: str, max_pending: int = MAX_PENDING_CHARS) -> Tuple[str, str]:
    """Split ``text`` into (ready, held).

    ``held`` is a trailing ``[`` with partial command text and no ``]``. Anything
    longer than ``max_pending`` is not a command and stays in ``ready``.
    """
    start = text.rfind("[")
    if start == -1:
        return text, ""
    tail = text[start:]
    if "]" in tail or len(tail) > max_pending or not _starts_like_command(tail[1:]):
        return text, ""
    return text[:start], tail


def strip_commands(text: str, matches: List[CommandMatch]) -> str:
    cleaned = text
    for command in matches:
        cleaned = cleaned.replace(command.raw, "")
    # brackets that no rule could resolve are still not prose
    cleaned = _ANNOTATION_BRACKET.sub("", cleaned)
    cleaned = _NAVIGATION_BRACKET.sub("", cleaned)
    if cleaned != text:
        cleaned = _SPACE_RUN.sub(" ", cleaned)
    return cleaned


def recognize(fragment: str, current_page: int, pending: str = "",
              max_pending: int = MAX_PENDING_CHARS) -> Recognition:
    if not pending and "[" not in fragment and not _MARKER.search(fragment):
        return Recognition(fragment, fragment, [], False, "")

    ready, held = split_pending(pending + fragment, max_pending)
    if not ready:
        return Recognition("", "", [], False, held)

    source = _GLUED_DIGIT.sub(r"\1 \2", ready)
    matches = resolve_commands(source, current_page)
    had_commands = bool(matches) or _ANNOTATION_BRACKET.search(source) is not None
    return Recognition(strip_commands(source, matches), source, matches, had_commands, held)
