import pytest

from bardak.binmsg import Char64, Header, MessageBuffer, RawMessage


def _message(pref, type_, body, msg_id=1, flags=0):
    return Header(pref, type_, msg_id, len(body), flags).pack() + body


def test_char64_string_round_trip():
    c = Char64("player")
    assert str(c) == "player"
    assert len(c) == len("player")


def test_char64_bytes_are_nul_padded():
    assert Char64("srv").to_bytes() == b"srv".ljust(8, b"\0")


def test_char64_full_width():
    c = Char64("abcdefgh")
    assert len(c) == 8
    assert str(c) == "abcdefgh"


def test_char64_too_long_rejected():
    with pytest.raises(ValueError):
        Char64("abcdefghi")


def test_char64_int_is_little_endian():
    assert Char64("abc").to_int() == int.from_bytes(b"abc", "little")


def test_char64_int_round_trip():
    c = Char64("hasPref")
    assert Char64(c.to_int()) == c
    assert str(Char64(c.to_int())) == "hasPref"


def test_char64_int_out_of_range():
    with pytest.raises(ValueError):
        Char64(-1)


def test_char64_from_bytes_round_trip():
    c = Char64("tank")
    assert Char64.from_bytes(c.to_bytes()) == c


def test_char64_from_bytes_wrong_size():
    with pytest.raises(ValueError):
        Char64.from_bytes(b"abc")


def test_char64_string_comparison_is_prefix_like():
    assert Char64("srv") == "srv"
    assert Char64("srvx") == "srv"
    assert not (Char64("srv") == "srvx")
    assert Char64("srv") != "abc"
    assert not (Char64("abc") == "abcdefghi")


def test_char64_hash_matches_equality():
    assert len({Char64("a"), Char64("a"), Char64("b")}) == 2


def test_header_packs_to_24_bytes():
    packed = Header("a", "b", 0, 0, 0).pack()
    assert len(packed) == 24
    assert len(packed) == Header.SIZE


def test_header_round_trip():
    header = Header("srv", "name", 7, 12, 3)
    packed = header.pack()
    assert len(packed) == Header.SIZE
    assert packed[:8] == b"srv".ljust(8, b"\0")
    assert Header.unpack(packed) == header


def test_header_unpack_short():
    with pytest.raises(ValueError):
        Header.unpack(b"\0" * 10)


def test_header_range_checked():
    with pytest.raises(ValueError):
        Header("a", "b", 0, 1 << 16, 0)


def test_raw_message_correct():
    msg = RawMessage(_message("srv", "name", b"abc"))
    assert msg.is_correct()
    assert msg.body() == b"abc"
    assert msg.header().type == "name"


def test_raw_message_cut_body():
    data = _message("srv", "name", b"abc")[:-1]
    msg = RawMessage(data)
    assert not msg.is_correct()
    assert msg.body() == b""
    assert msg.header().type == "name"


def test_raw_message_too_short_for_header():
    msg = RawMessage(b"srv")
    assert msg.header() is None
    assert not msg.is_correct()


def test_buffer_splits_stream():
    first = _message("a", "x", b"12")
    second = _message("b", "y", b"")
    stream = first + second
    buf = MessageBuffer()
    got = buf.feed(stream[:5])
    assert got == []
    got = buf.feed(stream[5:])
    assert [m.data for m in got] == [first, second]
    assert buf.pending == b""