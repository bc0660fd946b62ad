"""Tests for the string-aware JSON scanner and repair helpers."""

from __future__ import annotations

import json

import pytest

from tribal_knowledge.extraction.json_repair import (
    closers_for,
    find_object_end,
    next_state,
    repair_unescaped_quotes,
    scan,
    truncation_candidates,
)
from tribal_knowledge.extraction.models import ScanState


class TestNextState:
    @pytest.mark.parametrize(
        ("state", "char", "expected"),
        [
            (ScanState.NORMAL, '"', ScanState.IN_STRING),
            (ScanState.NORMAL, "{", ScanState.NORMAL),
            (ScanState.NORMAL, "\\", ScanState.NORMAL),
            (ScanState.IN_STRING, '"', ScanState.NORMAL),
            (ScanState.IN_STRING, "\\", ScanState.ESCAPED),
            (ScanState.IN_STRING, "}", ScanState.IN_STRING),
            (ScanState.ESCAPED, '"', ScanState.IN_STRING),
            (ScanState.ESCAPED, "n", ScanState.IN_STRING),
        ],
    )
    def test_transitions(self, state: ScanState, char: str, expected: ScanState) -> None:
        assert next_state(state, char) is expected


class TestFindObjectEnd:
    def test_simple(self) -> None:
        text = 'x {"a": 1} y'
        end = find_object_end(text, 2)
        assert text[2:end] == '{"a": 1}'

    def test_nested(self) -> None:
        text = '{"a": {"b": [1, {"c": 2}]}} tail'
        assert text[: find_object_end(text, 0)] == '{"a": {"b": [1, {"c": 2}]}}'

    def test_braces_in_string_ignored(self) -> None:
        text = '{"a": "}}}{"}'
        assert find_object_end(text, 0) == len(text)

    def test_escaped_quote_does_not_end_string(self) -> None:
        text = '{"a": "\\"}"}'
        assert find_object_end(text, 0) == len(text)

    def test_unbalanced(self) -> None:
        assert find_object_end('{"a": {"b": 1}', 0) is None


class TestScan:
    def test_open_stack_and_state(self) -> None:
        summary = scan('{"a": [1, {"b": "x')
        assert summary.open_stack == ["{", "[", "{"]
        assert summary.state is ScanState.IN_STRING

    def test_commas_inside_strings_not_recorded(self) -> None:
        summary = scan('{"a": "x, y", "b": 1')
        assert [i for i, _ in summary.commas] == [12]

    def test_closers_innermost_first(self) -> None:
        assert closers_for(["{", "[", "{"]) == "}]}"
        assert closers_for([]) == ""


class TestTruncationCandidates:
    def test_first_candidate_closes_everything(self) -> None:
        first = next(truncation_candidates('{"a": [1, 2'))
        assert json.loads(first) == {"a": [1, 2]}

    def test_dangling_backslash_dropped(self) -> None:
        first = next(truncation_candidates('{"a": "path\\'))
        assert json.loads(first) == {"a": "path"}

    def test_later_candidates_cut_at_commas(self) -> None:
        candidates = list(truncation_candidates('{"a": 1, "b": {"c": 2, "d'))
        assert candidates[1] == '{"a": 1, "b": {"c": 2}}'
        assert candidates[2] == '{"a": 1}'
        assert json.loads(candidates[1]) == {"a": 1, "b": {"c": 2}}


class TestRepairUnescapedQuotes:
    def test_inner_quotes_escaped(self) -> None:
        repaired = repair_unescaped_quotes('{"markdown":"he said "hello" to me"}')
        assert json.loads(repaired) == {"markdown": 'he said "hello" to me'}

    def test_valid_json_unchanged(self) -> None:
        text = '{"a": "x", "b": ["y", "z"], "c": {"d": "e"}}'
        assert repair_unescaped_quotes(text) == text

    def test_quote_at_end_of_text_closes(self) -> None:
        assert repair_unescaped_quotes('{"a": "x"') == '{"a": "x"'
