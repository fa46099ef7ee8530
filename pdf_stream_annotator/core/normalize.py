import logging
from typing import Optional

from pdf_stream_annotator.core.types import Annotation, CommandMatch

logger = logging.getLogger(__name__)

HIGHLIGHT_COLOR = "rgba(255,255,0,0.3)"
CIRCLE_COLOR = "rgba(255,0,0,0.7)"
ANIMATION = "pulse"

# Clamp bounds (viewer coordinates, not PDF points)
X_RANGE = (0, 800)
Y_RANGE = (0, 1200)
WIDTH_RANGE = (10, 1000)
HEIGHT_RANGE = (10, 400)
RADIUS_RANGE = (5, 400)


def clamp(value: int, bounds) -> int:
    low, high = bounds
    return max(low, min(int(value), high))


def is_drawable(match: CommandMatch) -> bool:
    if match.page <= 0 or match.x < 0 or match.y < 0:
        return False
    if match.kind == "highlight":
        return (match.width or 0) > 0 and (match.height or 0) > 0
    if match.kind == "circle":
        return (match.radius or 0) > 0
    return False


def normalize(match: CommandMatch) -> Optional[Annotation]:
    """Turn a resolved command into a bounds-checked annotation.

    Returns None (and logs a warning) for non-positive dimensions or pages.
    """
    if not is_drawable(match):
        logger.warning(
            f"Skipping {match.kind} with unusable arguments: {match.raw!r} "
            f"(page={match.page}, x={match.x}, y={match.y}, "
            f"w={match.width}, h={match.height}, r={match.radius})"
        )
        return None

    if match.kind == "highlight":
        return Annotation(
            type="highlight",
            page=match.page,
            x=clamp(match.x, X_RANGE),
            y=clamp(match.y, Y_RANGE),
            width=clamp(match.width, WIDTH_RANGE),
            height=clamp(match.height, HEIGHT_RANGE),
            color=match.color or HIGHLIGHT_COLOR,
            animationEffect=ANIMATION,
            isAutomatic=False,
        )
    return Annotation(
        type="circle",
        page=match.page,
        x=clamp(match.x, X_RANGE),
        y=clamp(match.y, Y_RANGE),
        radius=clamp(match.radius, RADIUS_RANGE),
        color=match.color or CIRCLE_COLOR,
        animationEffect=ANIMATION,
        isAutomatic=False,
    )
