import argparse
from dataclasses import asdict, dataclass
from typing import Any, Dict

# Defaults shared by the pipeline, the payload store and the SSE layer
MAX_PENDING_CHARS = 200
HEARTBEAT_MS = 15_000
IDLE_TIMEOUT_MS = 60_000
PAYLOAD_TTL_MS = 120_000


@dataclass(frozen=True)
class PipelineConfig:
    """Runtime switches handed to the pipeline, store and stream layer at construction."""
    debug: bool = False
    annotation_trace: bool = False
    stream_trace: bool = False
    max_pending: int = MAX_PENDING_CHARS
    heartbeat_ms: int = HEARTBEAT_MS
    idle_timeout_ms: int = IDLE_TIMEOUT_MS
    payload_ttl_ms: int = PAYLOAD_TTL_MS

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PDF Stream Annotator MCP Server - turns streamed tutor answers into annotations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "\nExamples:\n"
            "  python main.py ~/Documents\n"
            "  python main.py --allow-dir ~/Work --transport sse --stream-trace\n"
            "  python main.py ~/Downloads --payload-ttl-ms 60000 --log-level DEBUG\n"
        ),
    )

    # 1) Positional directories (used by load_page_context)
    parser.add_argument(
        "directories",
        nargs="*",
        help="Accessible directories for PDFs (space-separated)",
    )

    # 2) Repeated --allow-dir option
    parser.add_argument(
        "--allow-dir",
        action="append",
        dest="allowed_dirs",
        help="Add an allowed directory (can be used multiple times)",
    )

    parser.add_argument(
        "--max-file-size",
        type=int,
        default=100 * 1024 * 1024,
        help="Maximum file size in bytes (default: 100MB)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )

    # Pipeline tracing
    parser.add_argument("--debug", action="store_true", help="Log a summary of every parsed fragment")
    parser.add_argument("--annotation-trace", action="store_true", help="Log every emitted annotation")
    parser.add_argument("--stream-trace", action="store_true", help="Log buffering decisions and SSE frames")

    parser.add_argument(
        "--payload-ttl-ms",
        type=_positive_int,
        default=PAYLOAD_TTL_MS,
        help=f"Lifetime of a prepared stream payload (default: {PAYLOAD_TTL_MS})",
    )
    parser.add_argument(
        "--heartbeat-ms",
        type=_positive_int,
        default=HEARTBEAT_MS,
        help=f"Interval between SSE heartbeat frames (default: {HEARTBEAT_MS})",
    )
    parser.add_argument(
        "--idle-timeout-ms",
        type=_positive_int,
        default=IDLE_TIMEOUT_MS,
        help=f"Close a stream after this much inactivity (default: {IDLE_TIMEOUT_MS})",
    )
    return parser


def parse_arguments(argv=None):
    """Parse CLI arguments for directories, transport and pipeline tracing."""
    return build_parser().parse_args(argv)


def config_from_args(args) -> PipelineConfig:
    return PipelineConfig(
        debug=bool(getattr(args, "debug", False)),
        annotation_trace=bool(getattr(args, "annotation_trace", False)),
        stream_trace=bool(getattr(args, "stream_trace", False)),
        heartbeat_ms=int(getattr(args, "heartbeat_ms", HEARTBEAT_MS)),
        idle_timeout_ms=int(getattr(args, "idle_timeout_ms", IDLE_TIMEOUT_MS)),
        payload_ttl_ms=int(getattr(args, "payload_ttl_ms", PAYLOAD_TTL_MS)),
    )
