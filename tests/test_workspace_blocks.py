"""
Tests for markdown to block conversion.
"""

import pytest

from noot.core.workspace import markdown_to_blocks


def _types(markdown):
    return [block["type"] for block in markdown_to_blocks(markdown)]


def _text(block):
    return block[block["type"]]["rich_text"][0]["text"]["content"]


class TestMarkdownToBlocks:
    """Test line classification."""

    @pytest.mark.parametrize(
        "line,block_type,content",
        [
            ("# Title", "heading_1", "Title"),
            ("## Section", "heading_2", "Section"),
            ("### Detail", "heading_3", "Detail"),
            ("- item", "bulleted_list_item", "item"),
            ("* item", "bulleted_list_item", "item"),
            ("12. twelfth", "numbered_list_item", "twelfth"),
            ("> quoted", "quote", "quoted"),
            ("plain words", "paragraph", "plain words"),
            ("#hashtag", "paragraph", "#hashtag"),
        ],
    )
    def test_single_line(self, line, block_type, content):
        blocks = markdown_to_blocks(line)
        assert len(blocks) == 1
        assert blocks[0]["object"] == "block"
        assert blocks[0]["type"] == block_type
        assert _text(blocks[0]) == content

    def test_checkboxes_before_bullets(self):
        blocks = markdown_to_blocks("- [ ] open\n- [x] done\n- [X] also done")
        assert [b["type"] for b in blocks] == ["to_do", "to_do", "to_do"]
        assert [b["to_do"]["checked"] for b in blocks] == [False, True, True]
        assert _text(blocks[0]) == "open"

    @pytest.mark.parametrize("line", ["---", "***", "___"])
    def test_divider(self, line):
        assert markdown_to_blocks(line) == [{"object": "block", "type": "divider", "divider": {}}]

    def test_blank_lines_skipped(self):
        assert _types("first\n\n   \nsecond") == ["paragraph", "paragraph"]

    def test_empty_body(self):
        assert markdown_to_blocks("") == []

    def test_code_fence_collects_lines(self):
        blocks = markdown_to_blocks("```python\nx = 1\n\ny = 2\n```\nafter")

        assert [b["type"] for b in blocks] == ["code", "paragraph"]
        assert blocks[0]["code"]["language"] == "python"
        assert _text(blocks[0]) == "x = 1\n\ny = 2"

    def test_code_fence_default_language(self):
        block = markdown_to_blocks("```\nraw\n```")[0]
        assert block["code"]["language"] == "plain text"

    def test_unclosed_code_fence(self):
        block = markdown_to_blocks("```\nrest of file\nmore")[0]
        assert _text(block) == "rest of file\nmore"

    def test_mixed_document(self):
        body = "# Plan\n\n- [ ] ship\n- test\n1. first\n> note\n---\ndone"
        assert _types(body) == [
            "heading_1",
            "to_do",
            "bulleted_list_item",
            "numbered_list_item",
            "quote",
            "divider",
            "paragraph",
        ]
