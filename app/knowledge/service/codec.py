"""
Markdown export/import for the knowledge base.

Document layout::

    # Business Mind - Knowledge Base Export
    Generated: <ISO timestamp>

    ### [<type>] <title>
    ID: <id>
    Created: <ISO-8601 UTC>

    #### Content:
    <content>

    ---

Items are separated by a line that is exactly ``---``. Inside content, any
line made of zero or more backslashes followed by ``---`` gets one extra
backslash on export and loses one on import, so content containing a bare
``---`` line survives a round trip unchanged.

Structural lines may also end in CRLF so documents saved by Windows
editors still import. Content is never normalized; carriage returns
inside it are preserved.
"""

import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.chat.entity.chat import now_ms
from app.knowledge.entity.knowledge import KnowledgeItem, KnowledgeType, single_line


EXPORT_TITLE = "# Business Mind - Knowledge Base Export"
CONTENT_MARKER = "#### Content:"
SEPARATOR = "---"

_ESCAPABLE_LINE = re.compile(r"^(\\*)---\r?$")
_SEPARATOR_LINE = re.compile(r"^---\r?$", re.MULTILINE)
_CONTENT_LINE = re.compile(r"^#### Content:\r?\n", re.MULTILINE)
_HEADER = re.compile(r"^### \[(.*?)\] ?(.*)$", re.MULTILINE)
_ID = re.compile(r"^ID:[ \t]*(.*)$", re.MULTILINE)
_CREATED = re.compile(r"^Created:[ \t]*(.*)$", re.MULTILINE)


def escape_content(content: str) -> str:
    return "\n".join(
        "\\" + line if _ESCAPABLE_LINE.match(line) else line
        for line in content.split("\n")
    )


def unescape_content(content: str) -> str:
    lines = []
    for line in content.split("\n"):
        match = _ESCAPABLE_LINE.match(line)
        if match and match.group(1):
            line = line[1:]
        lines.append(line)
    return "\n".join(lines)


def format_timestamp(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> Optional[int]:
    value = value.strip()
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return round(dt.timestamp() * 1000)


def export_markdown(items: List[KnowledgeItem], generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    out = [f"{EXPORT_TITLE}\nGenerated: {generated_at.isoformat(timespec='seconds')}\n\n"]
    for item in items:
        out.append(f"### [{item.type.value}] {single_line(item.title)}\n")
        out.append(f"ID: {item.id}\n")
        out.append(f"Created: {format_timestamp(item.created_at)}\n\n")
        out.append(f"{CONTENT_MARKER}\n{escape_content(item.content)}\n\n")
        out.append(f"{SEPARATOR}\n\n")
    return "".join(out)


def _split_block(block: str) -> Tuple[str, Optional[str]]:
    """Header text and raw body; the body is None when the block has no content marker."""
    marker = _CONTENT_LINE.search(block)
    if marker is None:
        return block, None
    return block[:marker.start()], block[marker.end():]


def _parse_block(header: str, body: Optional[str]) -> KnowledgeItem:
    type_title = _HEADER.search(header)
    raw_type = type_title.group(1).strip() if type_title else ""
    title = type_title.group(2).strip() if type_title else ""
    try:
        item_type = KnowledgeType(raw_type)
    except ValueError:
        item_type = KnowledgeType.NOTE

    created = _CREATED.search(header)
    created_at = parse_timestamp(created.group(1)) if created else None

    content = ""
    if body is not None:
        # Export appends one blank line after the content. Carriage returns
        # are kept: only a CRLF-converted document ends in "\r\n\r\n".
        for trailer in ("\r\n\r\n", "\n\n", "\r\n", "\n"):
            if body.endswith(trailer):
                body = body[:-len(trailer)]
                break
        content = unescape_content(body)

    return KnowledgeItem(
        id=_ID.search(header).group(1).strip(),
        title=title or "Untitled",
        type=item_type,
        content=content,
        created_at=created_at if created_at is not None else now_ms(),
    )


def import_markdown(text: str) -> List[KnowledgeItem]:
    """Parse an exported document. Blocks without an ``ID:`` line are ignored."""
    items = []
    for block in _SEPARATOR_LINE.split(text):
        # Blocks start right after a separator line; drop the blank line the export writes there.
        header, body = _split_block(block.lstrip("\r\n"))
        id_match = _ID.search(header)
        if not id_match or not id_match.group(1).strip():
            continue
        items.append(_parse_block(header, body))
    return items


def merge_items(existing: List[KnowledgeItem], imported: List[KnowledgeItem]) -> Tuple[List[KnowledgeItem], int, int]:
    """
    Fold imported items into the existing list.

    A matching id replaces the item in place; otherwise the item is prepended.
    Returns ``(items, added, updated)``.
    """
    merged = list(existing)
    added = updated = 0
    for item in imported:
        index = next((i for i, k in enumerate(merged) if k.id == item.id), None)
        if index is not None:
            merged[index] = item
            updated += 1
        else:
            merged.insert(0, item)
            added += 1
    return merged, added, updated
