"""LangChain tools for local file operations."""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime

from langchain_core.tools import BaseTool, tool

logger = logging.getLogger(__name__)


def _mtime(path: str) -> str:
    return datetime.fromtimestamp(os.path.getmtime(path), UTC).isoformat()


@tool
def read_file(path: str) -> str:
    """Read a text file and return its contents along with file metadata.

    Args:
        path: The file path to read.
    """
    if not os.path.isfile(path):
        return f"❌ File not found: {path}"
    try:
        with open(path, encoding="utf-8") as fh:
            content = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        return f"❌ Error reading file: {exc}"

    return (
        f"📄 File: {path}\n"
        f"📊 Size: {os.path.getsize(path)} bytes\n"
        f"📅 Modified: {_mtime(path)}\n\n"
        f"📝 Content:\n{content}"
    )


@tool
def write_file(path: str, content: str) -> str:
    """Write content to a file, creating parent directories if necessary.

    Args:
        path: The file path to write to.
        content: The content to write to the file.
    """
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as exc:
        return f"❌ Error writing file: {exc}"

    logger.info("Wrote %s", path)
    return (
        "✅ File written successfully!\n"
        f"📄 Path: {path}\n"
        f"📊 Size: {os.path.getsize(path)} bytes\n"
        f"📅 Created/Modified: {_mtime(path)}"
    )


@tool
def list_directory(path: str = ".") -> str:
    """List the directories and files inside a directory.

    Args:
        path: Directory to list, defaults to the current directory.
    """
    if not os.path.isdir(path):
        return f"❌ Directory not found: {path}"
    try:
        entries = sorted(os.scandir(path), key=lambda e: e.name)
    except OSError as exc:
        return f"❌ Error listing directory: {exc}"
    if not entries:
        return f"📁 Directory is empty: {path}"

    directories = [e for e in entries if e.is_dir()]
    files = [e for e in entries if e.is_file()]

    lines = [f"📁 Directory contents: {os.path.abspath(path)}", ""]
    if directories:
        lines.append(f"📂 Directories ({len(directories)}):")
        lines += [f"  📂 {d.name}/" for d in directories]
        lines.append("")
    if files:
        lines.append(f"📄 Files ({len(files)}):")
        lines += [f"  📄 {f.name} ({f.stat().st_size} bytes)" for f in files]
    return "\n".join(lines).rstrip()


@tool
def delete_file(path: str) -> str:
    """Delete a single file (directories are refused).

    Args:
        path: The file path to delete.
    """
    if not os.path.exists(path):
        return f"❌ File not found: {path}"
    if not os.path.isfile(path):
        return f"❌ Not a file: {path}"
    try:
        os.remove(path)
    except OSError as exc:
        return f"❌ Error deleting file: {exc}"

    logger.info("Deleted %s", path)
    return f"🗑️ File deleted successfully: {path}"


def build_file_tools() -> list[BaseTool]:
    return [read_file, write_file, list_directory, delete_file]
