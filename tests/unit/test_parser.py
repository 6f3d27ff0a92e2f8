"""Unit tests for the outline parser."""

import dataclasses

import pytest

from graphsieve.logseq.parser import (
    ContentNode,
    nodes_from_tree,
    parse,
    render_outline,
    strip_front_matter,
    strip_logbook,
    strip_logbook_nodes,
)


class TestParse:
    """Tests for parse()."""

    def test_front_matter_logbook_and_nesting(self):
        """Test front matter removal, LOGBOOK removal and nesting together."""
        text = (
            "---\n"
            "key: value\n"
            "---\n"
            "- A\n"
            "  - B\n"
            "    - C\n"
            "- :LOGBOOK:\n"
            "  - ignored\n"
            "  :END:\n"
            "- D\n"
        )
        nodes = parse(text)

        assert [n.text for n in nodes] == ["A", "D"]
        assert nodes[0].children[0].text == "B"
        assert nodes[0].children[0].children[0].text == "C"
        assert nodes[1].children == ()

    def test_logbook_block_removes_one_top_level_node(self):
        """Test that a LOGBOOK-only bullet disappears entirely."""
        text = "- one\n- :LOGBOOK:\n  CLOCK: [2025-01-15 Wed 10:00]\n  :END:\n- three\n"
        nodes = parse(text)

        assert [n.text for n in nodes] == ["one", "three"]

    def test_empty_input(self):
        """Test that empty and None inputs give no nodes."""
        assert parse("") == []
        assert parse(None) == []
        assert parse("\n   \n") == []

    def test_continuation_lines(self):
        """Test that lines inside a bullet's content column continue it."""
        nodes = parse("- First line\n  second line\n- Next\n")

        assert nodes[0].text == "First line\nsecond line"
        assert nodes[1].text == "Next"

    def test_properties_stay_with_their_block(self):
        """Test that property lines under a bullet belong to that bullet."""
        nodes = parse("- Page\n  id:: 123\n  - Child\n")

        assert nodes[0].text == "Page\nid:: 123"
        assert nodes[0].children[0].text == "Child"

    def test_plain_indented_text(self):
        """Test indentation-based nesting without bullets."""
        nodes = parse("Top\n  Child\n    Grandchild\nSibling\n")

        assert [n.text for n in nodes] == ["Top", "Sibling"]
        assert nodes[0].children[0].text == "Child"
        assert nodes[0].children[0].children[0].text == "Grandchild"

    def test_tabs_count_as_indentation(self):
        """Test that tab-indented bullets nest."""
        nodes = parse("- A\n\t- B\n")

        assert nodes[0].children[0].text == "B"

    def test_ordered_list_markers_removed(self):
        """Test that '1.' style markers are not kept in the text."""
        nodes = parse("1. one\n2. two\n")

        assert [n.text for n in nodes] == ["one", "two"]

    def test_code_fence_contents_are_not_bullets(self):
        """Test that dash lines inside a fence stay in the block text."""
        nodes = parse("- code\n  ```\n  - not a bullet\n  ```\n- after\n")

        assert nodes[0].text == "code\n```\n- not a bullet\n```"
        assert nodes[0].children == ()
        assert nodes[1].text == "after"

    def test_parse_is_deterministic(self):
        """Test that parsing the same text twice gives equal trees."""
        text = "- A\n  - B\n- C\n"
        assert parse(text) == parse(text)

    def test_nodes_are_immutable(self):
        """Test that ContentNode cannot be modified."""
        node = parse("- A\n")[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            node.text = "changed"

    def test_first_line(self):
        """Test ContentNode.first_line and lines."""
        node = ContentNode("one\ntwo")
        assert node.first_line == "one"
        assert node.lines == ["one", "two"]


class TestStripping:
    """Tests for front matter and LOGBOOK stripping."""

    def test_strip_front_matter(self):
        """Test that a leading --- block is removed."""
        assert strip_front_matter("---\na: 1\n---\n- body") == "- body"

    def test_unterminated_front_matter_kept(self):
        """Test that an unterminated block is left alone."""
        text = "---\na: 1\n- body"
        assert strip_front_matter(text) == text

    def test_front_matter_must_open_the_page(self):
        """Test that a later --- line is not front matter."""
        text = "- body\n---\nx\n---"
        assert strip_front_matter(text) == text

    def test_strip_logbook_case_insensitive(self):
        """Test that LOGBOOK markers match regardless of case."""
        assert strip_logbook("keep\n:logbook:\nCLOCK\n:end:\nalso") == "keep\nalso"

    def test_strip_logbook_nodes(self):
        """Test removal of LOGBOOK sibling ranges."""
        nodes = [
            ContentNode(":LOGBOOK:"),
            ContentNode("CLOCK: [2025-01-15]"),
            ContentNode(":END:"),
            ContentNode("keep", (ContentNode(":LOGBOOK:"), ContentNode(":END:"), ContentNode("child"))),
        ]
        result = strip_logbook_nodes(nodes)

        assert [n.text for n in result] == ["keep"]
        assert [c.text for c in result[0].children] == ["child"]


class TestNodesFromTree:
    """Tests for nodes_from_tree()."""

    def test_converts_block_dicts(self):
        """Test conversion of outliner block trees."""
        blocks = [
            {"content": "a", "children": [{"content": "b"}]},
            ["uuid", "6500b0a1-1111-2222-3333-444455556666"],
            {"content": None},
        ]
        nodes = nodes_from_tree(blocks)

        assert [n.text for n in nodes] == ["a", ""]
        assert nodes[0].children[0].text == "b"

    def test_non_list_input(self):
        """Test that unexpected payloads give no nodes."""
        assert nodes_from_tree(None) == []
        assert nodes_from_tree({"content": "a"}) == []


class TestRenderOutline:
    """Tests for render_outline()."""

    def test_renders_nested_bullets(self):
        """Test bulleted rendering with continuation lines."""
        nodes = parse("- A\n  more\n  - B\n")
        assert render_outline(nodes) == "- A\n  more\n  - B"
