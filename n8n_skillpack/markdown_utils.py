"""
Markdown formatting utilities for the n8n skill pack
Small text transforms shared by the node renderer, packager and index builder
"""

import re
from typing import Dict, Iterator, List, Sequence, Tuple

# Characters kept in anchors besides [a-z0-9-]: CJK unified ideographs
_ANCHOR_STRIP = re.compile(r"[^a-z0-9\-\u4e00-\u9fff]")


def format_heading(text: str, level: int = 1) -> str:
    hashes = "#" * max(1, min(6, level))
    return f"{hashes} {text}"


def format_list(items: Sequence[str], ordered: bool = False) -> str:
    lines = []
    for index, item in enumerate(items):
        prefix = f"{index + 1}." if ordered else "-"
        lines.append(f"{prefix} {item}")
    return "\n".join(lines)


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Pipe table; empty string when there are no headers or no rows"""
    if not headers or not rows:
        return ""
    lines = [
        f"| {' | '.join(headers)} |",
        f"| {' | '.join('---' for _ in headers)} |",
    ]
    for row in rows:
        lines.append(f"| {' | '.join(row)} |")
    return "\n".join(lines)


def format_code_block(code: str, language: str = "") -> str:
    return f"```{language}\n{code}\n```"


def format_link(text: str, url: str) -> str:
    return f"[{text}]({url})"


def escape_table_cell(text: str) -> str:
    """Keep a value on one table row"""
    if not text:
        return ""
    return re.sub(r"\s*[\r\n]+\s*", " ", text).replace("|", "\\|").strip()


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3].rstrip() + "..."


def slugify_anchor(text: str) -> str:
    """Heading anchor: lower-case, whitespace to hyphens, other symbols dropped"""
    slug = re.sub(r"\s+", "-", text.strip().lower())
    slug = _ANCHOR_STRIP.sub("", slug)
    return slug or "node"


def unique_anchor(text: str, seen: Dict[str, int]) -> str:
    """Slug that is unique within one document, numbered like GitHub heading ids"""
    base = slugify_anchor(text)
    if base not in seen:
        seen[base] = 0
        return base

    count = seen[base]
    while True:
        count += 1
        candidate = f"{base}-{count}"
        if candidate not in seen:
            break
    seen[base] = count
    seen[candidate] = 0
    return candidate


def split_lines(text: str) -> List[str]:
    """Split rendered text into \\n-delimited lines, dropping one trailing newline"""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    if normalized.endswith("\n"):
        normalized = normalized[:-1]
    return normalized.split("\n")


_HEADING = re.compile(r"^#{1,6}\s+(.+?)\s*$")


def iter_headings(lines: Sequence[str]) -> Iterator[str]:
    """Heading texts in document order, skipping fenced code blocks"""
    in_fence = False
    for line in lines:
        if line.startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING.match(line)
        if match:
            yield match.group(1)


def name_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive alphabetical order, ties broken by the raw name"""
    return name.casefold(), name
