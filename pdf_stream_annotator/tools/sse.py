"""Server-sent event framing for annotated answer streams.

Frames are ``event: <type>\\ndata: <json>\\n\\n``. While a stream is open a
heartbeat frame goes out every heartbeat interval; if no fragment arrives
within the idle timeout the stream ends with a ``Connection timeout`` error.
"""
import asyncio
import json
import logging
import time
from typing import Any, AsyncIterable, AsyncIterator, Iterable, List, Optional

from pdf_stream_annotator.core.config import HEARTBEAT_MS, IDLE_TIMEOUT_MS
from pdf_stream_annotator.core.page_range import clamp_page
from pdf_stream_annotator.parsing.pipeline import CommandPipeline

logger = logging.getLogger(__name__)


def format_sse_message(data: Any, event: str = "message") -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


def heartbeat_frame() -> str:
    return format_sse_message({"type": "heartbeat", "timestamp": int(time.time() * 1000)}, "heartbeat")


def describe_error(error: BaseException) -> str:
    """Readable one-line form of an exception for an error frame."""
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name


async def _next_fragment(iterator: AsyncIterator[str]) -> str:
    return await iterator.__anext__()


async def iterate(fragments: Iterable[str]) -> AsyncIterator[str]:
    for fragment in fragments:
        yield fragment


async def stream_events(
    fragments: AsyncIterable[str],
    pipeline: CommandPipeline,
    current_page: int,
    total_pages: Optional[int] = None,
    heartbeat_ms: Optional[int] = None,
    idle_timeout_ms: Optional[int] = None,
) -> AsyncIterator[str]:
    """Turn a fragment stream into SSE frames: content, annotations, navigation, heartbeats, end.

    Navigation targets are clamped when ``total_pages`` is known; otherwise the
    raw target (possibly the last-page sentinel) is sent for the client to clamp.
    """
    heartbeat_s = (heartbeat_ms or pipeline.config.heartbeat_ms or HEARTBEAT_MS) / 1000.0
    idle_s = (idle_timeout_ms or pipeline.config.idle_timeout_ms or IDLE_TIMEOUT_MS) / 1000.0
    trace = pipeline.config.stream_trace

    loop = asyncio.get_running_loop()
    iterator = fragments.__aiter__()
    pending: Optional[asyncio.Future] = None
    last_activity = loop.time()
    next_heartbeat = last_activity + heartbeat_s

    yield format_sse_message({"type": "connect", "message": "Stream connected"}, "connect")
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(_next_fragment(iterator))

            deadline = last_activity + idle_s
            wait_s = max(0.0, min(next_heartbeat, deadline) - loop.time())
            done, _ = await asyncio.wait({pending}, timeout=wait_s)

            if not done:
                now = loop.time()
                if now >= deadline:
                    logger.warning(f"Closing stream after {idle_s:.1f}s without a fragment")
                    yield format_sse_message({
                        "type": "error",
                        "error": "Connection timeout",
                        "details": "The connection was closed due to inactivity",
                    }, "error")
                    return
                if now >= next_heartbeat:
                    next_heartbeat = now + heartbeat_s
                    yield heartbeat_frame()
                continue

            task, pending = pending, None
            try:
                fragment = task.result()
            except StopAsyncIteration:
                break
            last_activity = loop.time()

            for frame in _fragment_frames(pipeline.process(fragment, current_page), total_pages):
                if trace:
                    logger.info(f"SSE frame: {frame.strip()!r}")
                yield frame

        tail = pipeline.flush()
        if tail:
            yield format_sse_message({"type": "content", "content": tail}, "content")
        yield format_sse_message({"type": "end", "message": "Stream completed"}, "end")
    except Exception as e:
        logger.exception("Stream processing failed")
        yield format_sse_message({
            "type": "error",
            "error": "Stream processing failed",
            "details": describe_error(e),
        }, "error")
        yield format_sse_message({"type": "end", "message": "Stream completed with error recovery"}, "end")
    finally:
        if pending is not None and not pending.done():
            pending.cancel()


def _fragment_frames(result, total_pages: Optional[int]) -> List[str]:
    frames = []
    if result.text:
        frames.append(format_sse_message({"type": "content", "content": result.text}, "content"))
    if result.annotations:
        frames.append(format_sse_message({"type": "annotations", "annotations": result.annotations}, "annotations"))
    navigation = result.navigation
    if navigation["hasNavigation"]:
        target = navigation["targetPage"]
        if total_pages:
            target = clamp_page(target, total_pages)
        frames.append(format_sse_message(
            {"type": "navigation", "targetPage": target, "delayMs": navigation["delayMs"]},
            "navigation",
        ))
    return frames


async def render_stream(fragments: Iterable[str], pipeline: CommandPipeline, current_page: int,
                        total_pages: Optional[int] = None) -> str:
    """Run a finite list of fragments through ``stream_events`` and join the frames."""
    frames = [frame async for frame in stream_events(iterate(fragments), pipeline, current_page, total_pages)]
    return "".join(frames)
