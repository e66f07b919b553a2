"""
Unit tests for type-declaration analysis.

Covers range detection for type aliases and interfaces, string/comment
handling, and the strict/permissive split on unbalanced input.
"""

from __future__ import annotations

import pytest

from flowspec.core.errors import ParseError
from flowspec.core.type_decls import (
    SourceScanner,
    TypeDeclaration,
    collect_type_declarations,
    declared_line_indices,
    extract_type_name,
)


def _ranges(declarations: list[TypeDeclaration]) -> list[tuple[str, int, int]]:
    return [(d.name, d.start_line, d.end_line) for d in declarations]


class TestCollectTypeDeclarations:
    """Tests for collect_type_declarations."""

    def test_mixed_declarations(self):
        """Type aliases, generics and interfaces get their full line ranges."""
        lines = [
            "import { flow } from '@auto-engineer/flow';",
            "",
            "type B = Event<'B', {",
            "  id: string;",
            "}>;",
            "",
            "interface A {",
            "  name: string;",
            "}",
            "type C = string;",
            "flow('x', () => {});",
        ]

        declarations = collect_type_declarations(lines)

        assert _ranges(declarations) == [("B", 2, 4), ("A", 6, 8), ("C", 9, 9)]
        assert [d.keyword for d in declarations] == ["type", "interface", "type"]

    def test_braces_in_strings_and_comments_ignored(self):
        lines = [
            "type D = {",
            "  label: '}';",
            "  // } comment",
            "  /* { */",
            "};",
        ]

        assert _ranges(collect_type_declarations(lines)) == [("D", 0, 4)]

    def test_multiline_union(self):
        """Union members on following lines belong to the declaration."""
        lines = [
            "type Status =",
            "  | 'open'",
            "  | 'closed';",
            "flow('x', () => {});",
        ]

        assert _ranges(collect_type_declarations(lines)) == [("Status", 0, 2)]

    def test_declaration_inside_block_comment_skipped(self):
        lines = [
            "/*",
            "type Hidden = string;",
            "*/",
            "type Shown = string;",
        ]

        assert _ranges(collect_type_declarations(lines)) == [("Shown", 3, 3)]

    def test_arrow_is_not_an_angle_bracket(self):
        lines = ["type Fn = (value: string) => void;", "type After = number;"]

        assert _ranges(collect_type_declarations(lines)) == [("Fn", 0, 0), ("After", 1, 1)]

    def test_export_prefix(self):
        assert _ranges(collect_type_declarations(["export type E = number;"])) == [("E", 0, 0)]

    def test_indented_type_is_not_top_level(self):
        lines = ["flow('x', () => {", "  type Local = string;", "});"]

        assert collect_type_declarations(lines) == []

    def test_ranges_never_overlap(self):
        lines = [
            "type A = { a: string };",
            "type B = {",
            "  b: A;",
            "};",
            "interface C { c: B }",
        ]

        declarations = collect_type_declarations(lines)
        covered: list[int] = []
        for declaration in declarations:
            covered.extend(declaration.line_range)

        assert len(covered) == len(set(covered))
        assert declared_line_indices(declarations) == {0, 1, 2, 3, 4}


class TestUnbalancedDeclarations:
    """Permissive extraction vs strict reconstruction on defects."""

    LINES = [
        "type A = string;",
        "type Broken = {",
        "  x: string;",
    ]

    def test_permissive_keeps_earlier_declarations(self):
        assert _ranges(collect_type_declarations(self.LINES)) == [("A", 0, 0)]

    def test_strict_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            collect_type_declarations(self.LINES, strict=True, file="items.flow.ts")

        assert "Broken" in str(exc_info.value)
        assert exc_info.value.context is not None
        assert exc_info.value.context.line == 2
        assert "items.flow.ts:2:1" in str(exc_info.value)

    def test_unterminated_before_next_declaration(self):
        lines = ["type A = {", "type B = string;"]

        assert _ranges(collect_type_declarations(lines)) == [("A", 0, 0), ("B", 1, 1)]
        with pytest.raises(ParseError, match="not terminated"):
            collect_type_declarations(lines, strict=True)


class TestHelpers:
    """Tests for small helpers."""

    def test_extract_type_name(self):
        assert extract_type_name("type ItemAdded = Event<'ItemAdded', {") == "ItemAdded"
        assert extract_type_name("interface Props {") == "Props"
        assert extract_type_name("flow('x', () => {") == ""

    def test_declaration_range_must_be_ordered(self):
        with pytest.raises(ValueError):
            TypeDeclaration(name="X", start_line=3, end_line=2)

    def test_scanner_tracks_template_literals_across_lines(self):
        scanner = SourceScanner()

        first = scanner.scan("const q = gql`{")
        assert first.braces == 0
        assert not scanner.at_code

        scanner.scan("  items }")
        scanner.scan("`;")
        assert scanner.at_code
