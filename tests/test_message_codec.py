"""
Tests for message assembly and parsing: UNA advice, UNH/UNT envelope, trailer count.
"""
import pytest

from singlewindow.messaging.exceptions import (
    MalformedEnvelope,
    SegmentCountMismatch,
    UnbalancedEnvelope,
    UndecodableMessage,
)
from singlewindow.messaging.message_codec import (
    decode_message,
    decode_message_result,
    decode_messages,
    encode_message,
    encode_message_text,
    reencode,
)
from singlewindow.messaging.value_objects import Delimiters, Envelope, Segment

BODY = (
    Segment.of("BGM", "IM", "REF-1", "9"),
    Segment.of("LOC", "28", "DE"),
)


def _envelope(**kwargs):
    return Envelope(message_type="CUSDEC", reference="MSG0001", **kwargs)


class TestEncoding:

    def test_layout_with_service_advice(self):
        text = encode_message_text(_envelope(), BODY)
        assert text == "UNA:+.? 'UNH+MSG0001+CUSDEC:D:96B:UN'BGM+IM+REF-1+9'LOC+28+DE'UNT+4+MSG0001'"

    def test_layout_without_service_advice(self):
        text = encode_message_text(_envelope(service_advice=False), BODY)
        assert text.startswith("UNH+MSG0001+")

    def test_custom_delimiters_are_declared_without_service_advice(self):
        delimiters = Delimiters(component="|", field="*", terminator="~")
        data = encode_message(_envelope(delimiters=delimiters, service_advice=False), BODY)
        assert data.startswith(b"UNA|*.? ~UNH*MSG0001*")
        message = decode_message(data)
        assert message.envelope.delimiters == delimiters
        assert message.segments == BODY

    def test_trailer_counts_header_and_trailer(self):
        message = decode_message(encode_message(_envelope(), BODY))
        assert message.segment_count == 4
        assert message.segments == BODY

    def test_body_must_not_hold_envelope_segments(self):
        with pytest.raises(ValueError):
            encode_message_text(_envelope(), (Segment.of("UNT", "2", "X"),))

    def test_non_ascii_text_encodes_in_utf8(self):
        body = (Segment.of("FTX", "AAA", "", "", "Zürich Straße"),)
        data = encode_message(_envelope(), body)
        assert decode_message(data).segments[0].component(3) == "Zürich Straße"


class TestDecoding:

    def test_custom_delimiters_from_service_advice(self):
        delimiters = Delimiters(component="*", field="|", decimal_mark=",", escape="\\", terminator="~")
        data = encode_message(_envelope(delimiters=delimiters), BODY)
        assert data.startswith(b"UNA*|,\\ ~")
        message = decode_message(data)
        assert message.envelope.delimiters == delimiters
        assert message.segments == BODY

    def test_reencode_is_byte_identical(self):
        data = b"UNA:+.? 'UNH+MSG0001+CUSDEC:D:96B:UN'BGM+IM+REF-1+9'XYZ+opaque?+data'UNT+4+MSG0001'"
        assert reencode(decode_message(data)) == data

    def test_unknown_segments_kept_in_order(self):
        data = "UNH+M1+CUSDEC:D:96B:UN'BGM+IM+R+9'ZZZ+1'LOC+28+DE'QQQ'UNT+6+M1'"
        message = decode_message(data)
        assert [s.tag for s in message.segments] == ["BGM", "ZZZ", "LOC", "QQQ"]
        assert message.unknown_positions == (1, 3)
        assert [s.tag for s in message.unknown_segments] == ["ZZZ", "QQQ"]

    def test_several_messages_in_one_stream(self):
        data = "UNH+A+CUSDEC:D:96B:UN'BGM+IM+R1+9'UNT+3+A'UNH+B+CUSDEC:D:96B:UN'UNT+2+B'"
        messages = decode_messages(data)
        assert [m.envelope.reference for m in messages] == ["A", "B"]
        assert messages[1].segments == ()

    def test_single_decode_rejects_two_messages(self):
        data = "UNH+A+CUSDEC:D:96B:UN'UNT+2+A'UNH+B+CUSDEC:D:96B:UN'UNT+2+B'"
        with pytest.raises(MalformedEnvelope) as exc:
            decode_message(data)
        assert exc.value.check == "message_count"


class TestFormatErrors:

    def test_count_mismatch_rejects_whole_message(self):
        data = "UNH+M1+CUSDEC:D:96B:UN'BGM+IM+R+9'UNT+5+M1'"
        with pytest.raises(SegmentCountMismatch) as exc:
            decode_message(data)
        assert exc.value.declared == 5
        assert exc.value.actual == 3
        assert exc.value.reason_code == "FMT-002"

    def test_missing_trailer(self):
        with pytest.raises(UnbalancedEnvelope):
            decode_message("UNH+M1+CUSDEC:D:96B:UN'BGM+IM+R+9'")

    def test_trailer_before_header(self):
        with pytest.raises(UnbalancedEnvelope):
            decode_message("UNT+2+M1'UNH+M1+CUSDEC:D:96B:UN'")

    def test_reference_mismatch(self):
        with pytest.raises(MalformedEnvelope) as exc:
            decode_message("UNH+M1+CUSDEC:D:96B:UN'UNT+2+M2'")
        assert exc.value.check == "envelope_reference"

    def test_segment_outside_envelope(self):
        with pytest.raises(MalformedEnvelope):
            decode_message("BGM+IM+R+9'UNH+M1+CUSDEC:D:96B:UN'UNT+2+M1'")

    def test_bad_service_advice(self):
        with pytest.raises(MalformedEnvelope):
            decode_message("UNA:::::'UNH+M1+CUSDEC:D:96B:UN'UNT+2+M1'")

    def test_invalid_bytes(self):
        with pytest.raises(UndecodableMessage):
            decode_message(b"UNH+M1+CUSDEC:D:96B:UN'FTX+\xff\xfe'UNT+3+M1'")

    def test_result_form_never_raises(self):
        outcome = decode_message_result("UNH+M1+CUSDEC:D:96B:UN'BGM+IM+R+9'UNT+9+M1'")
        assert not outcome.ok
        assert outcome.message is None
        assert isinstance(outcome.error, SegmentCountMismatch)

    def test_result_form_success(self):
        outcome = decode_message_result(encode_message(_envelope(), BODY))
        assert outcome.ok
        assert outcome.message.envelope.reference == "MSG0001"
