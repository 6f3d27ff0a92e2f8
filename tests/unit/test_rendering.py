"""Unit tests for the per-line rule chain and the text views."""

import pytest

from graphsieve.logseq.parser import ContentNode, parse
from graphsieve.models.filter_options import FilterOptions
from graphsieve.rendering.engine import (
    flatten_outline_text,
    has_renderable_content,
    outline_summary_text,
    plain_text,
    strip_markdown,
    walk,
)
from graphsieve.rendering.rules import (
    apply_rules,
    is_forced_hidden_property,
    is_only_embed,
    is_only_ref,
    normalize_task_line,
    property_key,
    remove_macro_tokens,
    strip_inline_refs,
)

UUID = "6500b0a1-1111-2222-3333-444455556666"


class TestTaskNormalization:
    """Tests for task marker normalization."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("- TODO write report", "- [ ] write report"),
            ("- DOING write report", "- [ ] write report"),
            ("- NOW call", "- [ ] call"),
            ("LATER read", "[ ] read"),
            ("- DONE write report", "- [x] write report"),
            ("- CANCELED meeting", "- [-] meeting"),
            ("- CANCELLED meeting", "- [-] meeting"),
            ("- [x] already checked", "- [x] already checked"),
            ("- todo lowercase", "- todo lowercase"),
            ("- TODOS are not markers", "- TODOS are not markers"),
        ],
    )
    def test_normalize_task_line(self, line, expected):
        """Test marker-to-checkbox rewriting."""
        assert normalize_task_line(line) == expected

    def test_outline_view_normalizes_tasks(self):
        """Test task normalization through the outline view."""
        nodes = parse("- TODO write report\n- DONE ship it\n")
        text = flatten_outline_text(nodes, {"normalizeTasks": True})

        assert text == "- [ ] write report\n- [x] ship it"

    def test_tasks_untouched_when_disabled(self):
        """Test that markers stay when normalize_tasks is off."""
        nodes = parse("- TODO write report\n")
        assert flatten_outline_text(nodes) == "- TODO write report"

    def test_task_inside_code_fence_untouched(self):
        """Test that markers inside a fenced block are left alone."""
        nodes = [ContentNode("```\nTODO inside\n```")]
        text = flatten_outline_text(nodes, {"normalizeTasks": True})

        assert "- TODO inside" in text.split("\n")


class TestHidingRules:
    """Tests for property, query and reference hiding."""

    def test_property_key(self):
        """Test property declaration detection."""
        assert property_key("owner:: me") == "owner"
        assert property_key("- ID:: abc") == "ID"
        assert property_key("plain text") is None

    def test_forced_hidden_properties(self):
        """Test that id:: and collapsed:: are always hidden."""
        assert is_forced_hidden_property("id:: " + UUID)
        assert is_forced_hidden_property("- Collapsed:: true")
        assert not is_forced_hidden_property("owner:: me")
        assert is_forced_hidden_property("Owner:: me", always_hide_keys=("owner",))

    def test_forced_hidden_lines_dropped_by_default(self):
        """Test that id/collapsed lines never render."""
        nodes = parse(f"- Page\n  id:: {UUID}\n  collapsed:: true\n  owner:: me\n")

        assert flatten_outline_text(nodes) == "- Page\n- owner:: me"

    def test_always_hide_keys(self):
        """Test user-configured hidden keys (case-insensitive)."""
        nodes = parse("- Page\n  owner:: me\n")
        text = flatten_outline_text(nodes, {"alwaysHideKeys": ["Owner"]})

        assert text == "- Page"

    def test_hide_properties(self):
        """Test that hide_properties drops every key:: value line."""
        nodes = parse("- Page\n  owner:: me\n  tags:: a, b\n")
        assert flatten_outline_text(nodes, {"hideProperties": True}) == "- Page"

    def test_hide_queries(self):
        """Test that hide_queries drops lines holding a query macro."""
        nodes = parse("- {{query (todo now)}}\n- keep\n")
        assert flatten_outline_text(nodes, {"hideQueries": True}) == "- keep"

    def test_hide_renderers(self):
        """Test that hide_renderers drops renderer macro lines."""
        nodes = parse("- {{renderer :todomaster}}\n- keep\n")
        assert flatten_outline_text(nodes, {"hideRenderers": True}) == "- keep"

    def test_remove_macros_keeps_queries(self):
        """Test that macro removal spares queries unless they are hidden."""
        assert remove_macro_tokens("a {{youtube x}} b {{query y}}") == "a  b {{query y}}"
        assert remove_macro_tokens("a {{youtube x}} b {{query y}}", also_queries=True) == "a  b "

    def test_remove_strings(self):
        """Test literal string removal."""
        nodes = parse("- ship #draft today\n")
        assert flatten_outline_text(nodes, {"removeStrings": ["#draft"]}) == "- ship  today"

    def test_strip_page_brackets(self):
        """Test that [[Page]] renders as Page."""
        nodes = parse("- see [[Projects/Acme]]\n")
        assert flatten_outline_text(nodes, {"stripPageBrackets": True}) == "- see Projects/Acme"

    @pytest.mark.parametrize(
        "flag",
        ["hideProperties", "hideQueries", "hideRenderers", "removeMacros", "stripPageBrackets"],
    )
    def test_filters_leave_unrelated_lines_alone(self, flag):
        """Test that a filter is a no-op on lines without its construct."""
        nodes = parse("- plain line\n  - another one\n")
        assert flatten_outline_text(nodes, {flag: True}) == flatten_outline_text(nodes)


class TestReferences:
    """Tests for block references and embeds."""

    def test_is_only_ref(self):
        """Test detection of reference-only lines."""
        assert is_only_ref(f"(({UUID}))")
        assert is_only_ref(f"- (({UUID}))")
        assert not is_only_ref(f"see (({UUID}))")

    def test_is_only_embed(self):
        """Test detection of embed-only lines."""
        assert is_only_embed("{{embed [[Other Page]]}}")
        assert is_only_embed(f"{{{{embed (({UUID}))}}}}")
        assert not is_only_embed("text {{embed [[Other Page]]}}")

    def test_pure_ref_becomes_placeholder(self):
        """Test the linked policy for a reference-only line."""
        lines = list(walk([ContentNode(f"(({UUID}))")]))

        assert len(lines) == 1
        assert lines[0].kind == "ref"
        assert lines[0].ref_id == UUID

    def test_pure_embed_becomes_placeholder(self):
        """Test embed placeholders carry the embedded page name."""
        lines = list(walk([ContentNode("{{embed [[Other Page]]}}")]))

        assert lines[0].kind == "embed"
        assert lines[0].ref_id == "Other Page"

    def test_hide_references_drops_pure_lines(self):
        """Test that hide_references removes reference-only lines."""
        nodes = [ContentNode(f"(({UUID}))"), ContentNode("keep")]
        assert flatten_outline_text(nodes, {"hideReferences": True}) == "- keep"

    def test_folder_mode_strips_references(self):
        """Test the folder policy: references are removed from any line."""
        nodes = [ContentNode(f"(({UUID}))"), ContentNode(f"see (({UUID})) here")]
        assert flatten_outline_text(nodes, {"folderMode": True}) == "- see here"

    def test_strip_inline_refs(self):
        """Test removal of inline references and embeds."""
        assert strip_inline_refs(f"a (({UUID})) b {{{{embed [[P]]}}}} c") == "a b c"

    def test_lone_dash_dropped_in_folder_mode(self):
        """Test that a bare '-' line disappears under the folder policy."""
        assert list(walk([ContentNode("-")], {"folderMode": True})) == []
        assert [line.text for line in walk([ContentNode("-")])] == ["-"]

    def test_apply_rules_drops_blank_lines(self):
        """Test that blank lines never survive."""
        assert apply_rules("   ", FilterOptions()) is None
        assert apply_rules("- ", FilterOptions()) is None


class TestWalk:
    """Tests for walk()."""

    def test_depth_and_order(self):
        """Test depth-first traversal with depths."""
        nodes = parse("- A\n  - B\n- C\n")
        lines = [(line.depth, line.text) for line in walk(nodes)]

        assert lines == [(0, "A"), (1, "B"), (0, "C")]

    def test_logbook_nodes_hidden_by_default(self):
        """Test that LOGBOOK sibling ranges are hidden unless disabled."""
        nodes = [ContentNode(":LOGBOOK:"), ContentNode("CLOCK: x"), ContentNode(":END:"), ContentNode("body")]

        assert [line.text for line in walk(nodes)] == ["body"]
        shown = [line.text for line in walk(nodes, {"hideLogbook": False})]
        assert shown == [":LOGBOOK:", "CLOCK: x", ":END:", "body"]

    def test_walk_does_not_modify_tree(self):
        """Test that the same tree renders identically twice."""
        nodes = parse("- TODO a\n  - (({}))\n".format(UUID))
        first = flatten_outline_text(nodes, {"normalizeTasks": True, "folderMode": True})
        second = flatten_outline_text(nodes, {"normalizeTasks": True, "folderMode": True})

        assert first == second == "- [ ] a"
        assert flatten_outline_text(nodes).startswith("- TODO a")

    def test_has_renderable_content(self):
        """Test detection of pages whose lines are all hidden."""
        assert not has_renderable_content([ContentNode(f"id:: {UUID}")])
        assert has_renderable_content([ContentNode("text")])
        assert not has_renderable_content([])


class TestTextViews:
    """Tests for plain_text() and outline_summary_text()."""

    def test_strip_markdown(self):
        """Test markup removal on single lines."""
        assert strip_markdown("**Bold** and _em_ text") == "Bold and em text"
        assert strip_markdown("# Heading") == "Heading"
        assert strip_markdown("see [[Page]] and [site](https://x.org)") == "see Page and site"
        assert strip_markdown("snake_case_name stays") == "snake_case_name stays"

    def test_plain_text(self):
        """Test narrative rendering with image-only lines dropped."""
        nodes = parse("- **Bold** and _em_ text\n- ![only](../assets/x.png)\n- # Heading\n  - child\n")

        assert plain_text(nodes) == "Bold and em text\nHeading\n  child"

    def test_checkbox_only_at_line_start(self):
        """Test that only a leading checkbox is removed, never link text."""
        assert strip_markdown("[x] shipped") == "shipped"
        assert strip_markdown("[ ] open item") == "open item"
        assert strip_markdown("keep [x] here") == "keep [x] here"
        assert plain_text(parse("- see [[x]] and [[Y]]")) == "see x and Y"
        assert plain_text(parse("- DONE ship [[x]]"), {"normalizeTasks": True}) == "ship x"

    def test_plain_text_references(self):
        """Test that reference-only lines render as '[ref] <uuid>'."""
        nodes = [ContentNode(f"(({UUID}))")]

        assert plain_text(nodes) == f"[ref] {UUID}"
        assert plain_text(nodes, {"hideReferences": True}) == ""

    def test_outline_summary_text(self):
        """Test first-line summaries with links reduced."""
        nodes = [
            ContentNode(
                "First [label](http://x) ![img](../assets/a.png)\nsecond line",
                (ContentNode("Child [[Page][alias]]"),),
            )
        ]
        assert outline_summary_text(nodes) == "- First label\n  - Child alias"
