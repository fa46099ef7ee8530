"""Two-phase stream requests: prepare (store the context) and stream (read it back once)."""
import base64
import binascii
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from pdf_stream_annotator.backends.payload_store import PayloadStore, default_store
from pdf_stream_annotator.core.types import PageHint, PdfText, StreamPayload

logger = logging.getLogger(__name__)

MAX_PAGE_HINTS = 10

# Limits for the payload copy that travels with the stream request
FALLBACK_MESSAGES = 6
FALLBACK_MESSAGE_CHARS = 1200
FALLBACK_CURRENT_CHARS = 5000
FALLBACK_NEIGHBOUR_CHARS = 600

DEFAULT_QUESTION = "Explain the current page."


def new_stream_id() -> str:
    return str(int(time.time() * 1000))


def _as_pdf_text(pdf_text: Union[PdfText, Dict[str, Any], str, None]) -> PdfText:
    if not pdf_text:
        return PdfText()
    if isinstance(pdf_text, str):
        return PdfText(current=pdf_text)
    if not isinstance(pdf_text, dict):
        raise ValueError(f"pdfText must be an object or a string, not {type(pdf_text).__name__}")
    return PdfText(**pdf_text)


def _clip(value: Any, limit: int) -> Optional[str]:
    if not value:
        return None
    return str(value)[:limit]


def encode_fallback_payload(payload: StreamPayload) -> str:
    """Trimmed, base64 (URL-safe) JSON copy of a payload for requests that land on another instance."""
    pdf_text = payload.get("pdfText") or {}
    current_page = payload.get("currentPage") or 1
    trimmed = {
        "messages": [
            {"role": m.get("role"), "content": str(m.get("content") or "")[:FALLBACK_MESSAGE_CHARS]}
            for m in payload.get("messages", [])[-FALLBACK_MESSAGES:]
        ],
        "pdfText": {
            "current": str(pdf_text.get("current") or "")[:FALLBACK_CURRENT_CHARS],
            "previous": _clip(pdf_text.get("previous"), FALLBACK_NEIGHBOUR_CHARS),
            "next": _clip(pdf_text.get("next"), FALLBACK_NEIGHBOUR_CHARS),
            "currentPage": current_page,
            "totalPages": pdf_text.get("totalPages") or 1,
        },
        "currentPage": current_page,
        "pdfId": payload.get("pdfId"),
        "pageHints": list(payload.get("pageHints") or [])[:MAX_PAGE_HINTS],
    }
    raw = json.dumps(trimmed, ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_fallback_payload(data: str) -> StreamPayload:
    try:
        raw = base64.urlsafe_b64decode(data.encode("ascii"))
        decoded = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise ValueError(f"Undecodable stream payload: {e}") from e
    if not isinstance(decoded, dict):
        raise ValueError("Stream payload must be a JSON object")

    messages = decoded.get("messages") or []
    if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
        raise ValueError("Stream payload messages must be a list of objects")
    page_hints = decoded.get("pageHints") or []
    if not isinstance(page_hints, list):
        raise ValueError("Stream payload pageHints must be a list")
    try:
        current_page = int(decoded.get("currentPage") or 1)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid currentPage in stream payload: {e}") from e

    return StreamPayload(
        messages=messages,
        pdfText=_as_pdf_text(decoded.get("pdfText")),
        pdfId=decoded.get("pdfId"),
        currentPage=max(1, current_page),
        pageHints=page_hints[:MAX_PAGE_HINTS],
    )


def prepare_stream(
    messages: List[Dict[str, Any]],
    pdf_text: Union[PdfText, Dict[str, Any], str, None] = None,
    pdf_id: Optional[str] = None,
    stream_id: Optional[str] = None,
    current_page: Optional[int] = None,
    page_hints: Optional[List[PageHint]] = None,
    store: Optional[PayloadStore] = None,
) -> Dict[str, Optional[str]]:
    """Store the context for a stream and return its id plus the encoded fallback copy."""
    if not isinstance(messages, list) or not messages or not all(isinstance(m, dict) for m in messages):
        raise ValueError("Missing or invalid messages")

    store = store or default_store()
    effective_id = str(stream_id or new_stream_id())
    payload = StreamPayload(
        messages=messages,
        pdfText=_as_pdf_text(pdf_text),
        pdfId=pdf_id,
        currentPage=current_page or 1,
        pageHints=list(page_hints or [])[:MAX_PAGE_HINTS],
    )
    store.set(effective_id, payload)

    try:
        encoded = encode_fallback_payload(payload)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not encode fallback payload for stream {effective_id}: {e}")
        encoded = None
    return {"streamId": effective_id, "messageDataB64": encoded}


def resolve_stream_payload(
    stream_id: str,
    store: Optional[PayloadStore] = None,
    message_data_b64: Optional[str] = None,
    question: Optional[str] = None,
) -> Tuple[StreamPayload, str]:
    """Find the context for a stream: encoded request copy, then the store, then a minimal payload.

    Returns (payload, source) with source one of "query", "store", "empty".
    The stored payload is deleted whichever source wins.
    """
    store = store or default_store()
    stored = store.get(stream_id)
    if stored is not None:
        store.delete(stream_id)

    if message_data_b64:
        try:
            payload = decode_fallback_payload(message_data_b64)
            if payload["messages"]:
                return payload, "query"
        except ValueError as e:
            logger.warning(f"Stream {stream_id}: encoded payload rejected ({e})")

    if stored is not None and stored.get("messages"):
        return stored, "store"

    logger.info(f"Stream {stream_id}: no stored or encoded payload, using a minimal one")
    minimal = StreamPayload(
        messages=[{"role": "user", "content": question or DEFAULT_QUESTION}],
        pdfText=PdfText(current="No text provided", currentPage=1, totalPages=1),
        pdfId=None,
        currentPage=1,
        pageHints=[],
    )
    return minimal, "empty"


def select_recent_messages(messages: List[Dict[str, Any]], pdf_text: PdfText) -> List[Dict[str, str]]:
    """Most recent turns, fewer when the page text already fills the context."""
    volume = sum(len(pdf_text.get(key) or "") for key in ("current", "previous", "next"))
    keep = 4 if volume > 5000 else 5 if volume > 2000 else 6
    recent = []
    for message in messages[-keep:]:
        role = message.get("role")
        recent.append({
            "role": role if role in ("user", "assistant", "system") else "user",
            "content": str(message.get("content") or ""),
        })
    return recent


def build_tutor_prompt(payload: StreamPayload) -> str:
    """System prompt describing the page in view and the command syntax the parser understands."""
    pdf_text = payload.get("pdfText") or {}
    page = payload.get("currentPage") or pdf_text.get("currentPage") or 1
    total = pdf_text.get("totalPages") or 1

    sections = [
        "You are an AI tutor helping a student understand a PDF document.",
        f"You are currently viewing page {page} of {total}.",
        f"Current page content ({page}/{total}):\n{pdf_text.get('current') or 'No text available for current page'}",
        f"Previous page ({page - 1}):\n{pdf_text['previous']}" if pdf_text.get("previous")
        else "No previous page available",
        f"Next page ({page + 1}):\n{pdf_text['next']}" if pdf_text.get("next")
        else "No next page available",
    ]
    hints = payload.get("pageHints") or []
    if hints:
        lines = [f"- Page {h['page']} (score {h['score']}): {str(h['snippet'])[:120]}" for h in hints]
        sections.append("PAGE HINTS (candidate relevant pages):\n" + "\n".join(lines))

    sections.append(
        "PAGE NAVIGATION - use these commands when the answer is on another page:\n"
        "  [GO TO PAGE n]  [NEXT PAGE]  [PREV PAGE]  [FIRST PAGE]  [LAST PAGE]\n"
        "Navigate before explaining content from that page."
    )
    sections.append(
        "VISUAL ANNOTATIONS - include at least one annotation or navigation command:\n"
        f'  [HIGHLIGHT {page} x y width height color="rgba(255,255,0,0.35)"]\n'
        f'  [CIRCLE {page} x y radius color="rgba(255,0,0,0.4)"]\n'
        "Coordinates are points on a 612x792 page; text usually starts at x=80 with 22 point lines.\n"
        "Prefer several one-line highlights (height 18-28) over one tall rectangle.\n"
        f"If coordinates cannot be estimated, use [HIGHLIGHT {page} 80 300 400 25] and say it is an estimate."
    )
    return "\n\n".join(sections)


def build_chat_messages(payload: StreamPayload) -> List[Dict[str, str]]:
    """Model input for a stream: the tutor system prompt followed by the recent turns."""
    pdf_text = payload.get("pdfText") or {}
    recent = select_recent_messages(payload.get("messages") or [], pdf_text)
    return [{"role": "system", "content": build_tutor_prompt(payload)}] + recent
