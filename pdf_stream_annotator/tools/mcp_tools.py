import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from pdf_stream_annotator.backends import payload_store
from pdf_stream_annotator.backends.pdfplumber_backend import load_page_context as backend_load_page_context
from pdf_stream_annotator.core import paths as _paths
from pdf_stream_annotator.core.config import PipelineConfig
from pdf_stream_annotator.core.page_range import clamp_page
from pdf_stream_annotator.core.paths import find_file
from pdf_stream_annotator.core.session import (
    build_chat_messages,
    prepare_stream as session_prepare_stream,
    resolve_stream_payload,
)
from pdf_stream_annotator.parsing.pipeline import CommandPipeline
from pdf_stream_annotator.tools.sse import render_stream

logger = logging.getLogger(__name__)

mcp = FastMCP("PDF Stream Annotator")

# Replaced by configure() at startup
CONFIG = PipelineConfig()


def configure(config: PipelineConfig) -> None:
    """Install the runtime configuration used by every tool."""
    global CONFIG
    CONFIG = config
    payload_store.configure_default_store(config.payload_ttl_ms)


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


# ---------- Parsing ----------
@mcp.tool()
async def parse_annotation_commands(text: str, current_page: int = 1) -> str:
    """Extract highlight/circle annotations and a navigation cue from a complete answer.

    Parameters
    ----------
    text: str
        Model output that may contain commands such as `[HIGHLIGHT 1 80 120 400 24]`,
        `[CIRCLE: 300, 400, 40, 2]`, `[HIGHLIGHT x=80 y=200 w=300 h=22]` or `[GO TO PAGE 4]`.
    current_page: int
        Page in view; used when a command omits its page.

    Returns JSON with `cleanedText`, `annotations`, `navigation` and `hadCommands`.
    An unterminated trailing bracket is returned as prose.
    """
    if current_page < 1:
        return f"Error: current_page must be >= 1 (got {current_page})."
    pipeline = CommandPipeline(CONFIG)
    result = pipeline.process(text, current_page)
    return _dumps({
        "cleanedText": result.text + pipeline.flush(),
        "annotations": result.annotations,
        "navigation": result.navigation,
        "hadCommands": result.had_commands,
    })


# ---------- Two-phase streaming ----------
@mcp.tool()
async def prepare_stream(
    messages: List[Dict[str, Any]],
    pdf_text: Optional[Dict[str, Any]] = None,
    pdf_id: Optional[str] = None,
    stream_id: Optional[str] = None,
    current_page: int = 1,
    page_hints: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Store the chat context for a stream (phase one).

    Returns JSON `{streamId, messageDataB64}`. Pass both to `stream_response`; the
    encoded copy is used when the stored payload is gone (expired, or stored by
    another server instance).
    """
    try:
        prepared = session_prepare_stream(
            messages,
            pdf_text=pdf_text,
            pdf_id=pdf_id,
            stream_id=stream_id,
            current_page=current_page,
            page_hints=page_hints,
        )
    except ValueError as ve:
        return f"Error: {ve}"
    return _dumps(prepared)


@mcp.tool()
async def stream_response(
    stream_id: str,
    fragments: List[str],
    message_data_b64: Optional[str] = None,
    total_pages: Optional[int] = None,
) -> str:
    """Replay streamed answer fragments for a prepared stream (phase two) and return the SSE frames.

    The stored payload is consumed: a second call with the same id falls back to
    `message_data_b64` or a minimal context.
    """
    payload, source = resolve_stream_payload(stream_id, message_data_b64=message_data_b64)
    pdf_text = payload.get("pdfText") or {}
    current_page = payload.get("currentPage") or 1
    pages = total_pages or pdf_text.get("totalPages")
    logger.info(f"Stream {stream_id}: payload from {source}, {len(fragments)} fragment(s), page {current_page}")
    return await render_stream(fragments, CommandPipeline(CONFIG), current_page, pages)


@mcp.tool()
async def build_prompt(stream_id: str) -> str:
    """Model input for a prepared stream, without consuming its stored payload.

    Returns a JSON list of chat messages: the tutor system prompt followed by the
    most recent turns (fewer when the page text is long).
    """
    payload = payload_store.get_stream_payload(stream_id)
    if payload is None:
        return f"Error: No prepared stream '{stream_id}' (expired, consumed, or stored on another instance)."
    return _dumps(build_chat_messages(payload))


# ---------- Page context ----------
@mcp.tool()
async def load_page_context(file_path: str, current_page: int = 1) -> str:
    """Text of the page in view and its neighbours from a PDF in the accessible directories.

    Returns JSON `{current, previous, next, currentPage, totalPages}`, ready to use as
    `pdf_text` in `prepare_stream`.
    """
    path = find_file(file_path)
    if not path:
        return f"Error: Could not find file '{file_path}'."
    try:
        return _dumps(backend_load_page_context(path, current_page))
    except ValueError as ve:
        return f"Error: {ve}"
    except Exception as e:
        logger.error(f"Page context extraction failed: {e}")
        return f"Error: {e}"


@mcp.tool()
async def clamp_navigation_target(target_page: int, total_pages: int) -> str:
    """Clamp a navigation target (e.g. the `[LAST PAGE]` sentinel) to the document's pages."""
    try:
        return _dumps({"targetPage": clamp_page(target_page, total_pages)})
    except ValueError as ve:
        return f"Error: {ve}"


@mcp.tool()
async def show_configuration() -> str:
    """Return the active pipeline configuration, payload store state and accessible directories as JSON."""
    store = payload_store.default_store()
    info = {
        "pipeline": CONFIG.as_dict(),
        "payload_store": {"ttl_ms": store.ttl_ms, "entries": len(store)},
        "accessible_directories": _paths.SEARCH_DIRECTORIES,
        "max_file_size_mb": _paths.MAX_FILE_SIZE // (1024 * 1024),
        "allowed_extensions": _paths.ALLOWED_EXTENSIONS,
    }
    return _dumps(info)
