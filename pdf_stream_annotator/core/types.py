from typing import Any, Dict, List, NamedTuple, Optional, TypedDict


class Annotation(TypedDict, total=False):
    type: str            # "highlight" or "circle" from the parser; the renderer also knows
                         # underline, arrow, text, rectangle, freeform
    page: int
    x: int
    y: int
    width: int           # highlight only
    height: int          # highlight only
    radius: int          # circle only
    color: str           # CSS color string
    animationEffect: str
    importance: str
    isAutomatic: bool


class CommandMatch(NamedTuple):
    """A bracket command resolved to one grammar rule, before normalization."""
    raw: str
    kind: str            # "highlight" | "circle"
    variant: str         # name of the grammar rule that resolved it
    start: int
    page: int
    x: int
    y: int
    width: Optional[int] = None
    height: Optional[int] = None
    radius: Optional[int] = None
    color: Optional[str] = None


class NavigationCue(TypedDict):
    targetPage: Optional[int]
    delayMs: int
    hasNavigation: bool


class PageHint(TypedDict):
    page: int
    score: float
    snippet: str


class PdfText(TypedDict, total=False):
    current: str
    previous: Optional[str]
    next: Optional[str]
    currentPage: int
    totalPages: int


class StreamPayload(TypedDict, total=False):
    messages: List[Dict[str, Any]]
    pdfText: PdfText
    pdfId: Optional[str]
    currentPage: int
    pageHints: List[PageHint]
    createdAt: float     # epoch milliseconds


class ChunkResult(NamedTuple):
    text: str                      # prose with commands removed
    annotations: List[Annotation]
    navigation: NavigationCue
    had_commands: bool
