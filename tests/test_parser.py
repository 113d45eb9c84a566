"""Tests for the status dump parser."""
import pytest

from mcp_videohub.hub_engine.parser import (
    END_MARKERS,
    INPUT_LABELS,
    OUTPUT_LABELS,
    VIDEO_OUTPUT_ROUTING,
    extract_section,
    split_tokens,
    decode_labels,
    decode_routing,
    device_info,
    route_command,
)
from mcp_videohub.hub_engine.schema import UNNAMED_LABEL


FULL_DUMP = """PROTOCOL PREAMBLE:
Version: 2.3

INPUT LABELS:
0 Camera 1
1 Camera 2

OUTPUT LABELS:
0 Program
1 Monitor

VIDEO OUTPUT LOCKS:
0 U
1 U

VIDEO OUTPUT ROUTING:
0 1
1 0

END PRELUDE:
"""


class TestExtractSection:
    """Tests for extract_section."""

    def test_section_between_markers(self):
        """Content runs from after the marker to the next end marker."""
        text = extract_section(FULL_DUMP, INPUT_LABELS, END_MARKERS)
        assert text == "\n0 Camera 1\n1 Camera 2\n\n"

    def test_section_to_end_of_text(self):
        """Without an end marker the section runs to the end."""
        assert extract_section("VIDEO OUTPUT ROUTING:\n0 1\n", VIDEO_OUTPUT_ROUTING, END_MARKERS) == "\n0 1\n"

    def test_absent_marker_is_empty(self):
        """Missing start marker gives an empty section, whatever the end markers."""
        assert extract_section(FULL_DUMP, "MONITORING OUTPUT LABELS:", END_MARKERS) == ""
        assert extract_section(FULL_DUMP, "MONITORING OUTPUT LABELS:", ()) == ""
        assert extract_section("", INPUT_LABELS, END_MARKERS) == ""

    def test_earliest_end_marker_wins(self):
        """The nearest end marker closes the section, not the first in the list."""
        text = "OUTPUT LABELS:\n0 A\nVIDEO OUTPUT LOCKS:\n0 U\nVIDEO OUTPUT ROUTING:\n0 0\n"
        assert extract_section(text, OUTPUT_LABELS, END_MARKERS) == "\n0 A\n"

    def test_first_occurrence_of_start_marker(self):
        """A repeated start marker does not move the section."""
        text = "INPUT LABELS:\n0 First\nINPUT LABELS:\n0 Second\n"
        assert extract_section(text, INPUT_LABELS, END_MARKERS) == "\n0 First\n"

    def test_repeatable(self):
        """Extracting twice from the same text yields the same result."""
        first = extract_section(FULL_DUMP, VIDEO_OUTPUT_ROUTING, END_MARKERS)
        second = extract_section(FULL_DUMP, VIDEO_OUTPUT_ROUTING, END_MARKERS)
        assert first == second

    def test_locks_not_mistaken_for_routing(self):
        """The locks section ends the output labels before routing starts."""
        text = extract_section(FULL_DUMP, OUTPUT_LABELS, END_MARKERS)
        assert "U" not in text


class TestSplitTokens:
    """Tests for split_tokens."""

    def test_mixed_delimiters(self):
        """CR, LF and period all split; empty tokens are dropped."""
        assert split_tokens("INPUT1\r\nINPUT2.INPUT3\n") == ["INPUT1", "INPUT2", "INPUT3"]

    def test_runs_of_delimiters(self):
        assert split_tokens("\n\n0 1..\r\r1 0\n") == ["0 1", "1 0"]

    def test_empty_text(self):
        assert split_tokens("") == []
        assert split_tokens("\r\n.\n") == []

    def test_whitespace_tokens_kept(self):
        """Tokens are not trimmed; decoders deal with whitespace."""
        assert split_tokens("3 \n") == ["3 "]


class TestDecodeLabels:
    """Tests for decode_labels."""

    def test_well_formed(self):
        assert decode_labels(["0 Camera 1", "1 Camera 2"]) == {0: "Camera 1", 1: "Camera 2"}

    def test_empty_label_is_unnamed(self):
        """An index without text becomes the unnamed placeholder."""
        assert decode_labels(["3 ", "4"]) == {3: UNNAMED_LABEL, 4: UNNAMED_LABEL}

    def test_label_whitespace_stripped(self):
        assert decode_labels(["  7   Replay  "]) == {7: "Replay"}

    def test_token_without_index_dropped(self):
        """Tokens that don't start with a number are dropped, not mapped to 0."""
        labels = decode_labels(["Camera", "0 Program", "-1 Bad"])
        assert labels == {0: "Program"}

    def test_later_duplicate_overwrites(self):
        assert decode_labels(["0 Old", "0 New"]) == {0: "New"}

    def test_large_index_not_limited(self):
        """No matrix size is assumed."""
        assert decode_labels(["287 Last input"]) == {287: "Last input"}

    @pytest.mark.parametrize("tokens", [[], ["", "   "], ["abc", "x 1"]])
    def test_never_raises(self, tokens):
        assert decode_labels(tokens) == {}


class TestDecodeRouting:
    """Tests for decode_routing."""

    def test_well_formed(self):
        assert decode_routing(["0 2", "1 3"]) == {0: 2, 1: 3}

    def test_short_token_does_not_affect_neighbours(self):
        """A token with one integer yields nothing; the tokens around it still decode."""
        assert decode_routing(["0 2", "5", "1 3"]) == {0: 2, 1: 3}

    def test_extra_integers_dropped(self):
        assert decode_routing(["0 1 2", "1 0"]) == {1: 0}

    def test_non_numeric_dropped(self):
        assert decode_routing(["0 U", "a b", "VIDEO OUTPUT ROUTING:", "2 4"]) == {2: 4}

    def test_surrounding_whitespace_allowed(self):
        assert decode_routing(["  3\t9  "]) == {3: 9}

    def test_later_duplicate_overwrites(self):
        assert decode_routing(["0 1", "0 5"]) == {0: 5}


class TestPipeline:
    """Extract, tokenize and decode together."""

    def test_routing_from_synthetic_dump(self):
        """Routing section decodes from a dump where labels follow it."""
        dump = "VIDEO OUTPUT ROUTING:\n0 1.\n1 0.\nOUTPUT LABELS:"
        section = extract_section(dump, VIDEO_OUTPUT_ROUTING, END_MARKERS)
        assert decode_routing(split_tokens(section)) == {0: 1, 1: 0}

    def test_full_dump(self):
        inputs = decode_labels(split_tokens(extract_section(FULL_DUMP, INPUT_LABELS, END_MARKERS)))
        outputs = decode_labels(split_tokens(extract_section(FULL_DUMP, OUTPUT_LABELS, END_MARKERS)))
        routing = decode_routing(split_tokens(extract_section(FULL_DUMP, VIDEO_OUTPUT_ROUTING, END_MARKERS)))

        assert inputs == {0: "Camera 1", 1: "Camera 2"}
        assert outputs == {0: "Program", 1: "Monitor"}
        assert routing == {0: 1, 1: 0}


class TestDeviceInfo:
    """Tests for device_info."""

    def test_lines_before_labels(self):
        assert device_info(FULL_DUMP) == ["PROTOCOL PREAMBLE:", "Version: 2.3"]

    def test_empty_preamble(self):
        assert device_info("") == []


class TestRouteCommand:
    """Tests for route_command."""

    def test_format(self):
        assert route_command(0, 2) == "VIDEO OUTPUT ROUTING:\n0 2\n\n"

    def test_zero_based_indices_passed_through(self):
        assert route_command(39, 11) == "VIDEO OUTPUT ROUTING:\n39 11\n\n"
