"""
Tests for the segment codec: escaping, scanning and stream splitting.
"""
import pytest

from singlewindow.messaging.exceptions import MalformedSegment
from singlewindow.messaging.segment_codec import (
    decode_segment,
    encode_segment,
    escape_text,
    segment_to_text,
    split_segments,
)
from singlewindow.messaging.value_objects import Delimiters, Segment


class TestEscaping:

    def test_reserved_characters_are_prefixed(self):
        assert escape_text("A+B:C'D?E") == "A?+B?:C?'D??E"

    def test_decimal_mark_is_not_reserved(self):
        assert escape_text("12.50") == "12.50"

    def test_encode_escapes_inside_components(self):
        text = encode_segment("FTX", ["AAA", "", "", "50% off: O'Brien + sons"])
        assert text == "FTX+AAA+++50% off?: O?'Brien ?+ sons'"

    def test_reserved_data_survives_decode(self):
        original = Segment.of("FTX", "AAA", "", "", "a?b+c:d'e")
        assert decode_segment(segment_to_text(original)) == original

    def test_double_escape_is_literal_escape(self):
        segment = decode_segment("FTX+a??'")
        assert segment.component(0) == "a?"


class TestStructure:

    def test_components_and_fields(self):
        segment = decode_segment("UNH+REF1+CUSDEC:D:96B:UN'")
        assert segment.tag == "UNH"
        assert segment.component(0) == "REF1"
        assert segment.fields[1] == ("CUSDEC", "D", "96B", "UN")

    def test_empty_fields_are_kept(self):
        segment = decode_segment("FTX+AAA+++text'")
        assert segment.fields == (("AAA",), ("",), ("",), ("text",))

    def test_component_default_when_absent(self):
        segment = decode_segment("LOC+28+DE'")
        assert segment.component(5, default="x") == "x"
        assert segment.qualifier() == "28"

    def test_custom_delimiters(self):
        delimiters = Delimiters(component="*", field="|", escape="\\", terminator="~")
        text = encode_segment("MOA", [("40", "12|5")], delimiters)
        assert text == "MOA|40*12\\|5~"
        assert decode_segment(text, delimiters).component(0, 1) == "12|5"


class TestMalformed:

    def test_missing_terminator(self):
        with pytest.raises(MalformedSegment) as exc:
            decode_segment("BGM+9+REF")
        assert exc.value.reason_code == "FMT-001"
        assert exc.value.check == "segment_syntax"

    def test_content_after_terminator(self):
        with pytest.raises(MalformedSegment):
            decode_segment("BGM+9'extra")

    def test_dangling_escape(self):
        with pytest.raises(MalformedSegment):
            decode_segment("FTX+abc?")

    def test_empty_tag(self):
        with pytest.raises(MalformedSegment):
            decode_segment("+abc'")

    def test_composite_tag(self):
        with pytest.raises(MalformedSegment):
            decode_segment("BG:M+abc'")

    def test_encode_rejects_bad_tag(self):
        with pytest.raises(ValueError):
            encode_segment("B-M", ["x"])


class TestSplitting:

    def test_stream_with_line_breaks(self):
        segments = list(split_segments("BGM+9'\r\nDTM+137:20240301:102'\nLOC+28+DE'"))
        assert [s.tag for s in segments] == ["BGM", "DTM", "LOC"]

    def test_escaped_terminator_does_not_split(self):
        segments = list(split_segments("FTX+it?'s'LOC+28+DE'"))
        assert len(segments) == 2
        assert segments[0].component(0) == "it's"

    def test_truncated_stream(self):
        with pytest.raises(MalformedSegment):
            list(split_segments("BGM+9'LOC+28"))
