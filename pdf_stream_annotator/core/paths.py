import logging
import os
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Limits and filters for PDFs read as page context
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_EXTENSIONS = [".pdf"]

# Configured directories (initialized at runtime; empty means no PDF access)
SEARCH_DIRECTORIES: List[str] = []


def _realpath(directory: str) -> str:
    return os.path.realpath(os.path.abspath(os.path.expanduser(directory)))


def _is_within(base: str, target: str) -> bool:
    base = os.path.join(os.path.realpath(base), "")  # ensure trailing separator
    target = os.path.realpath(target)
    return target.startswith(base) or target == base[:-1]


def setup_search_directories(args) -> None:
    """Configure SEARCH_DIRECTORIES and MAX_FILE_SIZE from parsed args.

    Unlike a file browser, the annotator never falls back to default folders:
    without directories the page-context tool simply reports that no PDF is reachable.
    """
    global MAX_FILE_SIZE

    MAX_FILE_SIZE = int(getattr(args, "max_file_size", MAX_FILE_SIZE))

    provided: List[str] = []
    if getattr(args, "directories", None):
        provided.extend(args.directories)
    if getattr(args, "allowed_dirs", None):
        provided.extend(args.allowed_dirs)

    validated: List[str] = []
    for d in provided:
        real_path = _realpath(d)
        if not os.path.isdir(real_path):
            logger.warning(f"Not a directory, skipped: {d} -> {real_path}")
            continue
        if not os.access(real_path, os.R_OK):
            logger.warning(f"Unreadable directory, skipped: {d} -> {real_path}")
            continue
        validated.append(real_path)

    if provided and not validated:
        logger.warning("None of the configured directories are usable; PDF page context is disabled.")

    # mutate in place so other modules see the update
    SEARCH_DIRECTORIES.clear()
    SEARCH_DIRECTORIES.extend(validated)


def validate_and_resolve_path(file_path: str) -> Optional[Path]:
    """Return the resolved PDF path if it is inside an allowed directory, small enough and a .pdf."""
    real_path = _realpath(file_path)

    if ".." in Path(file_path).parts or not any(_is_within(d, real_path) for d in SEARCH_DIRECTORIES):
        logger.warning(f"Rejected path outside allowed directories: {file_path}")
        return None

    resolved = Path(real_path)
    if not resolved.is_file():
        return None
    if resolved.suffix.lower() not in ALLOWED_EXTENSIONS:
        logger.warning(f"Disallowed file extension: {file_path}")
        return None
    if resolved.stat().st_size > MAX_FILE_SIZE:
        logger.warning(f"File too large: {file_path}")
        return None
    return resolved


def find_file(file_name: str) -> Optional[Path]:
    """Resolve an absolute path, or a name relative to one of the configured directories."""
    if os.path.isabs(file_name) or file_name.startswith("~"):
        return validate_and_resolve_path(file_name)

    for directory in SEARCH_DIRECTORIES:
        path = validate_and_resolve_path(os.path.join(directory, file_name))
        if path:
            return path

    logger.warning(f"File not found: {file_name}")
    return None
