from typing import Optional

from pdf_stream_annotator.core.types import Annotation

FALLBACK_COLOR = "rgba(255,255,0,0.25)"
FALLBACK_X = 80
TITLE_Y = 120
BODY_Y = 200
CHAR_WIDTH = 7.2
DEFAULT_TEXT_LENGTH = 55
WIDTH_RANGE = (160, 520)


def guess_kind(hint: str) -> str:
    return "title" if "title" in (hint or "").lower() else "body"


def synthesize_fallback(page: int, text_length: Optional[int] = None, kind: str = "title",
                        y: Optional[int] = None) -> Annotation:
    """Best-guess highlight for when the model asked to highlight but gave unusable numbers."""
    low, high = WIDTH_RANGE
    width = min(max((text_length or DEFAULT_TEXT_LENGTH) * CHAR_WIDTH, low), high)
    return Annotation(
        type="highlight",
        page=page,
        x=FALLBACK_X,
        y=y if y is not None else (TITLE_Y if kind == "title" else BODY_Y),
        width=int(round(width)),
        height=34 if kind == "title" else 48,
        color=FALLBACK_COLOR,
        animationEffect="pulse",
        importance="low",
        isAutomatic=True,
    )
