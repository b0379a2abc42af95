"""
I/O utilities for safe file operations with encoding detection and directory creation.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Any, Union

import orjson

# Formats whose text must be extracted before it reaches the pipeline
BINARY_SUFFIXES = {".pdf", ".docx", ".doc"}


def read_text_auto(path: Union[str, Path]) -> str:
    """
    Read a text file, trying common encodings.

    Args:
        path: Path to a plain text or markdown file

    Returns:
        File content

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is a binary document format

    Examples:
        >>> content = read_text_auto("profile.txt")
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() in BINARY_SUFFIXES:
        raise ValueError(
            f"{path.name} is a {path.suffix.lower()} file. "
            "Extract its text first and pass a .txt or .md file."
        )

    return _read_text_file(path)


def _read_text_file(path: Path) -> str:
    """Read text file with encoding detection."""
    encodings = ['utf-8', 'utf-8-sig', 'latin1', 'cp1252']

    for encoding in encodings:
        try:
            with open(path, 'r', encoding=encoding) as f:
                return f.read()
        except UnicodeDecodeError:
            continue

    # Final fallback - read as binary and decode with errors='replace'
    with open(path, 'rb') as f:
        content = f.read()
    return content.decode('utf-8', errors='replace')


def save_json(path: Union[str, Path], obj: Any) -> None:
    """
    Save object as indented JSON with automatic parent directory creation.

    Args:
        path: Output file path
        obj: Object to serialize

    Examples:
        >>> save_json("outputs/analysis.json", {"matchPercentage": 67})
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'wb') as f:
        f.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))


def save_bytes(path: Union[str, Path], content: bytes) -> None:
    """
    Save binary content with automatic parent directory creation.

    Args:
        path: Output file path
        content: Bytes to write
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'wb') as f:
        f.write(content)


def timestamp_filename() -> str:
    """
    Get current timestamp formatted for safe filename usage.

    Returns:
        Filename-safe timestamp (e.g., "20240315_103045")
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, creating parent directories as needed.

    Args:
        path: Directory path

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize_filename(value: str | None, max_length: int = 50) -> str:
    """
    Reduce a name or job title to a filename fragment.

    Keeps ASCII letters, digits, whitespace and hyphens, turns whitespace runs
    into underscores and truncates.

    Args:
        value: Original text
        max_length: Maximum fragment length

    Returns:
        Safe fragment, "Document" when nothing usable remains

    Examples:
        >>> sanitize_filename("Jane O'Doe")
        'Jane_ODoe'
    """
    safe = re.sub(r'[^A-Za-z0-9\s-]', '', value or '')
    safe = re.sub(r'\s+', '_', safe.strip())
    return safe[:max_length] or "Document"
