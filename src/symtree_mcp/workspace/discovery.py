"""Source file discovery inside workspace folders."""

import logging
from pathlib import Path
from typing import Optional

import pathspec

from ..parser import LANGUAGE_EXTENSIONS

logger = logging.getLogger(__name__)


# File patterns to skip
SKIP_PATTERNS = [
    "node_modules/", "vendor/", "venv/", ".venv/", "__pycache__/",
    "dist/", "build/", ".git/", ".tox/", ".mypy_cache/",
    "target/",
    ".gradle/",
    "generated/",
]


def should_skip_file(path: str) -> bool:
    """Check if file should be skipped based on path patterns."""
    # Normalize path separators for matching
    normalized = path.replace("\\", "/")
    for pattern in SKIP_PATTERNS:
        if pattern in normalized:
            return True
    return False


def load_gitignore(folder_path: Path) -> Optional[pathspec.PathSpec]:
    """Parse the folder's top-level .gitignore, if any."""
    gitignore = folder_path / ".gitignore"
    try:
        content = gitignore.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", content.splitlines())


def discover_source_files(
    folder_path: Path,
    max_files: int = 2000,
    max_size: int = 500 * 1024,  # 500KB
) -> list[Path]:
    """Discover source files in a workspace folder.

    Filters applied in order:
    1. Supported extension
    2. Skip list patterns
    3. .gitignore matching
    4. Size limit
    5. File count limit (shallow paths first)

    Args:
        folder_path: Root folder to scan
        max_files: Maximum number of files to return
        max_size: Maximum file size in bytes

    Returns:
        List of Path objects for source files
    """
    gitignore_spec = load_gitignore(folder_path)
    files = []

    for file_path in folder_path.rglob("*"):
        if file_path.suffix not in LANGUAGE_EXTENSIONS:
            continue

        if not file_path.is_file():
            continue

        # Get relative path for pattern matching
        try:
            rel_path = file_path.relative_to(folder_path).as_posix()
        except ValueError:
            continue

        if should_skip_file(rel_path):
            continue

        if gitignore_spec is not None and gitignore_spec.match_file(rel_path):
            continue

        try:
            if file_path.stat().st_size > max_size:
                continue
        except OSError:
            continue

        files.append(file_path)

    if len(files) > max_files:
        logger.info(
            "%s has %d source files; indexing the first %d",
            folder_path, len(files), max_files,
        )
        files.sort(key=lambda p: (len(p.relative_to(folder_path).parts), p.as_posix()))
        files = files[:max_files]

    return files
