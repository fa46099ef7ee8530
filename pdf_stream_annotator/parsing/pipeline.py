import logging
import threading
from typing import Callable, List, Optional

from pdf_stream_annotator.core.config import PipelineConfig
from pdf_stream_annotator.core.normalize import normalize
from pdf_stream_annotator.core.types import Annotation, ChunkResult, NavigationCue
from pdf_stream_annotator.parsing.fallback import guess_kind, synthesize_fallback
from pdf_stream_annotator.parsing.navigation import NO_NAVIGATION, extract_navigation
from pdf_stream_annotator.parsing.recognizer import recognize

logger = logging.getLogger(__name__)

AnnotationCallback = Callable[[List[Annotation]], None]
NavigationCallback = Callable[[int], None]
Scheduler = Callable[[float, Callable[[], None]], None]


def _timer_scheduler(delay_s: float, action: Callable[[], None]) -> None:
    timer = threading.Timer(delay_s, action)
    timer.daemon = True
    timer.start()


class CommandPipeline:
    """Feeds streamed text fragments through recognition, disambiguation and normalization.

    One instance per stream. The only state carried between fragments is
    ``pending_buffer``, the tail of an unterminated command bracket.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        on_annotations: Optional[AnnotationCallback] = None,
        on_navigation: Optional[NavigationCallback] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.config = config or PipelineConfig()
        self.on_annotations = on_annotations
        self.on_navigation = on_navigation
        self.scheduler = scheduler or _timer_scheduler
        self.pending_buffer = ""

    def process(self, fragment: str, current_page: int) -> ChunkResult:
        """Parse one fragment. Parsing faults never interrupt the stream: the text passes through as-is."""
        # _parse replaces the buffer before later steps can fail
        held = self.pending_buffer
        try:
            result = self._parse(fragment, current_page)
        except Exception:
            logger.exception("Failed to parse stream fragment; passing it through unchanged")
            self.pending_buffer = ""
            return ChunkResult(held + fragment, [], NavigationCue(**NO_NAVIGATION), False)

        self._dispatch(result)
        return result

    def flush(self) -> str:
        """End of stream: whatever is still held was never closed, so it is prose."""
        held, self.pending_buffer = self.pending_buffer, ""
        if held and self.config.stream_trace:
            logger.info(f"Flushing unterminated bracket as prose: {held!r}")
        return held

    def _parse(self, fragment: str, current_page: int) -> ChunkResult:
        recognition = recognize(fragment, current_page, self.pending_buffer, self.config.max_pending)
        self.pending_buffer = recognition.pending
        if recognition.pending and self.config.stream_trace:
            logger.info(f"Holding partial command until the next fragment: {recognition.pending!r}")

        annotations = [a for a in (normalize(m) for m in recognition.matches) if a is not None]
        if recognition.had_commands and not annotations:
            hint = recognition.text.strip()
            annotations = [synthesize_fallback(current_page, text_length=len(hint) or None, kind=guess_kind(hint))]
            logger.info(f"No usable command arguments; synthesized a fallback highlight on page {current_page}")

        navigation = extract_navigation(recognition.source, current_page)

        if self.config.debug:
            logger.debug(
                f"Fragment of {len(fragment)} chars: {len(recognition.matches)} commands, "
                f"{len(annotations)} annotations, navigation={navigation['targetPage']}"
            )
        if self.config.annotation_trace:
            for annotation in annotations:
                logger.info(f"Annotation: {annotation}")

        return ChunkResult(recognition.text, annotations, navigation, recognition.had_commands)

    def _dispatch(self, result: ChunkResult) -> None:
        if result.annotations and self.on_annotations is not None:
            self.on_annotations(list(result.annotations))

        navigation = result.navigation
        if navigation["hasNavigation"] and self.on_navigation is not None:
            target = navigation["targetPage"]
            callback = self.on_navigation
            self.scheduler(navigation["delayMs"] / 1000.0, lambda: callback(target))
