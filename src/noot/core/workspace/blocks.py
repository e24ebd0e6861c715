"""
Markdown to remote block conversion.

Line-oriented: each non-empty line becomes one block, except fenced code,
which collects lines up to the closing fence. Checkbox items are matched
before plain bullets since both start with "- ".
"""

from __future__ import annotations

import re
from typing import Any

Block = dict[str, Any]

NUMBERED_ITEM = re.compile(r"^\d+\.\s")
DIVIDERS = {"---", "***", "___"}
HEADINGS = (("### ", "heading_3"), ("## ", "heading_2"), ("# ", "heading_1"))


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": content}}]


def _text_block(block_type: str, content: str, **extra: Any) -> Block:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": _rich_text(content), **extra},
    }


def markdown_to_blocks(markdown: str) -> list[Block]:
    """
    Convert a note body into remote blocks.

    Supports headings 1-3, bulleted and numbered list items, checkboxes,
    fenced code (language from the opening fence, default "plain text"),
    block quotes, horizontal rules and paragraphs.

    Example:
        >>> [b["type"] for b in markdown_to_blocks("# Plan\\n- [ ] ship\\n- test")]
        ['heading_1', 'to_do', 'bulleted_list_item']
    """
    blocks: list[Block] = []
    lines = markdown.split("\n")

    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1

        if not line.strip():
            continue

        heading = next((kind for prefix, kind in HEADINGS if line.startswith(prefix)), None)
        if heading:
            prefix_len = int(heading[-1]) + 1
            blocks.append(_text_block(heading, line[prefix_len:]))
        elif line.startswith("- [ ] "):
            blocks.append(_text_block("to_do", line[6:], checked=False))
        elif line.startswith(("- [x] ", "- [X] ")):
            blocks.append(_text_block("to_do", line[6:], checked=True))
        elif line.startswith(("- ", "* ")):
            blocks.append(_text_block("bulleted_list_item", line[2:]))
        elif NUMBERED_ITEM.match(line):
            blocks.append(_text_block("numbered_list_item", NUMBERED_ITEM.sub("", line, count=1)))
        elif line.startswith("```"):
            language = line[3:].strip() or "plain text"
            code: list[str] = []
            while i < len(lines) and not lines[i].startswith("```"):
                code.append(lines[i])
                i += 1
            i += 1  # closing fence
            blocks.append(_text_block("code", "\n".join(code), language=language))
        elif line.startswith("> "):
            blocks.append(_text_block("quote", line[2:]))
        elif line in DIVIDERS:
            blocks.append({"object": "block", "type": "divider", "divider": {}})
        else:
            blocks.append(_text_block("paragraph", line))

    return blocks
