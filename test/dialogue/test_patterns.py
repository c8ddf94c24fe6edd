"""Unit tests for pattern classification."""

import pytest

from horizons_spk.dialogue.patterns import Pattern, PatternKind, find_match
from horizons_spk.models.outcome import AbortReason


class TestPatternConstruction:
    def test_literal_pattern_escapes_metacharacters(self):
        pattern = Pattern.expected("prompt", "Select ... [S]PK ?", literal=True)

        assert pattern.search("  Select ... [S]PK ? ") is not None
        assert pattern.search("Select xxx SPK") is None

    def test_error_pattern_requires_reason(self):
        with pytest.raises(ValueError, match="needs an abort reason"):
            Pattern("bad", "ERROR", PatternKind.ERROR_SIGNAL)

    def test_factories_set_kind(self):
        assert Pattern.expected("a", "x").kind == PatternKind.EXPECTED
        assert Pattern.error("b", "x", AbortReason.SPAN_TOO_LARGE).kind == PatternKind.ERROR_SIGNAL
        assert Pattern.transient("c", "x").kind == PatternKind.TRANSIENT_FAULT


class TestFindMatch:
    def test_no_match_returns_none(self):
        assert find_match("Horizons", [Pattern.expected("p", "Horizons> ", literal=True)]) is None

    def test_earliest_position_wins_over_list_order(self):
        late = Pattern.expected("late", "ftp> ", literal=True)
        early = Pattern.expected("early", "230 Login")

        hit = find_match("230 Login successful.\nftp> ", [late, early])

        assert hit.pattern is early

    def test_list_order_breaks_ties_between_expected_patterns(self):
        first = Pattern.expected("first", r"Ending")
        second = Pattern.expected("second", r"Ending TDB")

        hit = find_match("Ending TDB : ", [first, second])

        assert hit.pattern is first

    def test_error_beats_expected_at_same_position(self):
        prompt = Pattern.expected("prompt", r"Ending TDB")
        error = Pattern.error("short", r"Ending TDB[^\n]*too small", AbortReason.SPAN_TOO_SHORT)

        for patterns in ([prompt, error], [error, prompt]):
            hit = find_match("Ending TDB span too small\n", patterns)
            assert hit.kind == PatternKind.ERROR_SIGNAL

    def test_transient_fault_beats_expected_at_same_position(self):
        prompt = Pattern.expected("prompt", r"ftp")
        fault = Pattern.transient("fault", r"ftp: Can't build data connection")

        hit = find_match("ftp: Can't build data connection: refused\nftp> ", [prompt, fault])

        assert hit.kind == PatternKind.TRANSIENT_FAULT

    def test_earlier_expected_beats_later_error(self):
        prompt = Pattern.expected("prompt", "Horizons> ", literal=True)
        error = Pattern.error("err", r"ERROR[^\n]*", AbortReason.SERVER_REPORTED_INPUT_ERROR)

        hit = find_match("Horizons> \nERROR later", [error, prompt])

        assert hit.pattern is prompt

    def test_match_spans_multiple_lines(self):
        pattern = Pattern.expected("ack", r"Passive mode on\.\nftp> ")

        hit = find_match("passive\nPassive mode on.\nftp> ", [pattern])

        assert hit is not None
        assert hit.end == len("passive\nPassive mode on.\nftp> ")

    def test_match_reports_groups_and_surrounding_line(self):
        pattern = Pattern.expected("id", r"Assigned SPK object ID:[ \t]*(\S+)")
        buffer = "S\n Assigned SPK object ID: 1000003\n Enter your Internet e-mail address : "

        hit = find_match(buffer, [pattern])

        assert hit.groups == ("1000003",)
        assert hit.line == "Assigned SPK object ID: 1000003"
        assert buffer[hit.end :].startswith("\n Enter")
