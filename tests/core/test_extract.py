"""Tests for staged JSON extraction from model output."""

import json

import pytest

from workspace_apply.core.extract import (
    extract_json,
    extract_operations,
    parse_balanced,
    parse_fenced,
    parse_strict,
)

OPS = [{"path": "a.txt", "action": "create", "content": "hi"}]


class TestStages:
    """Test each extraction stage on its own."""

    def test_strict(self) -> None:
        assert parse_strict('{"a": 1}') == {"a": 1}
        assert parse_strict("not json") is None

    def test_fenced_prefers_json_block(self) -> None:
        text = (
            "Here you go:\n```text\n[1, 2]\n```\nand\n"
            '```json\n{"operations": []}\n```\n'
        )

        assert parse_fenced(text) == {"operations": []}

    def test_fenced_untagged(self) -> None:
        assert parse_fenced('```\n{"x": true}\n```') == {"x": True}

    def test_balanced_ignores_brackets_in_strings(self) -> None:
        text = 'Result: {"content": "a } b ] c", "n": [1, {"m": 2}]} trailing'

        assert parse_balanced(text) == {"content": "a } b ] c", "n": [1, {"m": 2}]}

    def test_balanced_handles_escaped_quotes(self) -> None:
        text = 'x {"s": "say \\"hi\\" }"} y'

        assert parse_balanced(text) == {"s": 'say "hi" }'}

    def test_balanced_skips_unbalanced_prefix(self) -> None:
        assert parse_balanced('{ broken [ {"ok": 1}') == {"ok": 1}


class TestExtractJson:
    """Test the staged pipeline."""

    @pytest.mark.parametrize("text", ["", "   ", "no json here"])
    def test_nothing_found(self, text: str) -> None:
        assert extract_json(text) is None

    def test_stage_order(self) -> None:
        assert extract_json("[1]") == [1]
        assert extract_json("```json\n[2]\n```") == [2]
        assert extract_json("Sure! [3] done") == [3]


class TestExtractOperations:
    """Test the operation shapes accepted from model output."""

    def test_bare_list(self) -> None:
        assert extract_operations(json.dumps(OPS)) == OPS

    def test_operations_object_in_prose(self) -> None:
        text = f"I'll create the file.\n{json.dumps({'operations': OPS})}\nDone."

        assert extract_operations(text) == OPS

    def test_tool_wrapper(self) -> None:
        wrapped = {"tool": "emit_files", "args": {"operations": OPS}}

        assert extract_operations(json.dumps(wrapped)) == OPS

    def test_tool_wrapper_with_string_arguments(self) -> None:
        wrapped = {"name": "emit_files", "arguments": json.dumps({"operations": OPS})}

        assert extract_operations(f"```json\n{json.dumps(wrapped)}\n```") == OPS

    def test_non_object_items_are_kept(self) -> None:
        assert extract_operations(json.dumps([1, "x", OPS[0]])) == [1, "x", OPS[0]]

    def test_nothing_found(self) -> None:
        assert extract_operations("I could not do that.") == []
        assert extract_operations('{"answer": 42}') == []
