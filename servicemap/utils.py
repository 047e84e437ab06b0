"""Shared file-system and pseudo-parsing helpers for extractors."""

from __future__ import annotations

import json
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set

MAX_FILE_BYTES = 512 * 1024

SKIP_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "out",
        ".next",
        "coverage",
        "vendor",
        "__pycache__",
        "target",
        ".gradle",
        ".idea",
        ".vscode",
    }
)

_OPEN_TO_CLOSE = {"(": ")", "{": "}", "[": "]", "<": ">"}
_QUOTES = {'"', "'", "`"}


def read_text(path: Path, max_bytes: int = MAX_FILE_BYTES) -> Optional[str]:
    """Return file contents, or None when missing, oversized or unreadable."""
    try:
        if not path.is_file():
            return None
        if path.stat().st_size > max_bytes:
            return None
        return path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None


def iter_files(
    root: Path,
    suffixes: Sequence[str],
    *,
    skip_dirs: Iterable[str] = SKIP_DIRS,
) -> Iterator[Path]:
    """Yield files under ``root`` whose names end with one of ``suffixes``.

    The walk is sorted so repeated scans produce facts in the same order, and
    hidden directories are always pruned.
    """
    if not root.is_dir():
        return
    skipped = set(skip_dirs)
    endings = tuple(suffixes)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            name for name in dirnames if name not in skipped and not name.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.endswith(endings):
                yield Path(dirpath) / filename


def relative_posix(path: Path, base: Path, fallback: Optional[Path] = None) -> str:
    """Return ``path`` relative to ``base`` using forward slashes."""
    for anchor in (base, fallback):
        if anchor is None:
            continue
        try:
            return path.relative_to(anchor).as_posix()
        except ValueError:
            continue
    return path.as_posix()


def line_of(text: str, index: int) -> int:
    """Return 1-based line number for a character index."""
    return text.count("\n", 0, index) + 1


def find_matching_delimiter(text: str, open_index: int) -> int:
    """Return the index of the delimiter closing ``text[open_index]`` or -1.

    Quoted strings and ``//`` / ``/* */`` comments are skipped so delimiters
    inside them do not count. Only the opening delimiter's own pair is
    tracked, which keeps ``<`` usable for generic argument lists.
    """
    if open_index < 0 or open_index >= len(text):
        return -1
    opener = text[open_index]
    closer = _OPEN_TO_CLOSE.get(opener)
    if closer is None:
        return -1
    depth = 0
    index = open_index
    length = len(text)
    while index < length:
        char = text[index]
        if char in _QUOTES:
            index = _skip_string(text, index)
            continue
        if char == "/" and index + 1 < length:
            following = text[index + 1]
            if following == "/":
                newline = text.find("\n", index)
                if newline == -1:
                    return -1
                index = newline + 1
                continue
            if following == "*":
                end = text.find("*/", index + 2)
                if end == -1:
                    return -1
                index = end + 2
                continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _skip_string(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n" and quote != "`":
            # Unterminated single-line literal; resume scanning on the next line.
            return index + 1
        index += 1
    return len(text)


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split ``text`` on ``separator`` only outside brackets and strings."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char in _QUOTES:
            end = _skip_string(text, index)
            current.append(text[index:end])
            index = end
            continue
        if char in "({[":
            depth += 1
        elif char in ")}]":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def humanize_dir_name(name: str) -> str:
    """Turn ``ms-user_admin`` into ``Ms User Admin``."""
    return " ".join(part[:1].upper() + part[1:].lower() for part in re.split(r"[-_]", name))


# Node.js manifest helpers


def load_package_json(root: Path) -> Dict[str, object]:
    """Return the parsed package.json contents or an empty dict."""
    text = read_text(root / "package.json")
    if text is None:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return {}
    if isinstance(data, dict):
        return data
    return {}


def node_dependencies(package: Dict[str, object]) -> Set[str]:
    """Return dependency and devDependency names from a parsed package.json."""
    names: Set[str] = set()
    for key in ("dependencies", "devDependencies"):
        deps = package.get(key)
        if isinstance(deps, dict):
            names.update(name for name in deps if isinstance(name, str))
    return names


# Java build descriptor helpers


def load_java_dependencies(root: Path) -> List[str]:
    """Collect ``group:artifact`` coordinates from pom.xml and Gradle files."""
    deps: Set[str] = set()
    pom = read_text(root / "pom.xml")
    if pom is not None:
        deps.update(_parse_pom_dependencies(pom))

    for name in ("build.gradle", "build.gradle.kts"):
        content = read_text(root / name)
        if content is not None:
            deps.update(_parse_gradle_dependencies(content))

    return sorted(deps)


def _parse_pom_dependencies(content: str) -> Set[str]:
    deps: Set[str] = set()
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return deps

    namespace = _detect_xml_namespace(root)
    prefix = f"{{{namespace}}}" if namespace else ""

    for tag in ("dependency", "parent", "plugin"):
        for dep in root.iter(f"{prefix}{tag}"):
            group = dep.findtext(f"{prefix}groupId", default="")
            artifact = dep.findtext(f"{prefix}artifactId", default="")
            if group and artifact:
                deps.add(f"{group}:{artifact}")
    return deps


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


_GRADLE_COORDINATE = re.compile(r"['\"]([\w\-.]+:[\w\-.]+)(?::[\w\-.]+)?['\"]")


def _parse_gradle_dependencies(content: str) -> Set[str]:
    deps: Set[str] = set()
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        if any(token in line for token in ("implementation", "api", "compile", "runtimeOnly")):
            match = _GRADLE_COORDINATE.search(line)
            if match:
                deps.add(match.group(1))
    return deps


__all__ = [
    "MAX_FILE_BYTES",
    "SKIP_DIRS",
    "find_matching_delimiter",
    "humanize_dir_name",
    "iter_files",
    "line_of",
    "load_java_dependencies",
    "load_package_json",
    "node_dependencies",
    "read_text",
    "relative_posix",
    "split_top_level",
]
