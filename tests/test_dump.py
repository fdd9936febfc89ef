import struct

import pytest

from bardak.binmsg import Header
from bardak.dump import bin_dump, bin_dump_short, hexdump, strip_color
from bardak.protocol import Protocol, Side


@pytest.fixture
def protocol():
    proto = Protocol()
    proto.load_defs(
        "client test:add(int32 a, int32 b);\n"
        "client test:say(string text);\n"
        "client test:flags(bool on, int8 small);\n"
        "server test:add(id result);\n"
    )
    return proto


def message(pref, type_name, body, msg_id=1, length=None):
    if length is None:
        length = len(body)
    return Header(pref, type_name, msg_id, length, 0).pack() + body


def add_message():
    return message("test", "add", struct.pack("<ii", 123, 2456))


def test_strip_color_removes_escapes():
    assert strip_color("\x1b[91mred\x1b[0m") == "red"


def test_strip_color_keeps_plain_m():
    assert strip_color("mm\x1b[0mm") == "mmm"


def test_hexdump_pads_row():
    assert strip_color(hexdump(b"\x01\x02", 0, 2)) == "    01 02 .. .. .. .. .. .. "


def test_hexdump_full_row_has_no_padding():
    text = strip_color(hexdump(bytes(range(8)), 0, 8))
    assert ".." not in text
    assert "\n" not in text


def test_hexdump_breaks_rows():
    text = strip_color(hexdump(bytes(range(10)), 0, 10))
    assert text.count("\n    ") == 1
    assert text.split("\n")[1].count("..") == 6


def test_hexdump_leading_padding_follows_offset():
    text = strip_color(hexdump(bytes(16), 3, 2))
    assert text.count("..") == 6
    assert text.startswith("    .. .. .. 00 00 ")


def test_short_dump_of_known_message(protocol):
    data = add_message()
    text, consumed = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert text == "client test:add #1 len = 8 (a = 123, b = 2456)"
    assert consumed == len(data)


def test_short_dump_side_selects_type(protocol):
    data = message("test", "add", struct.pack("<I", 7))
    text, consumed = bin_dump_short(protocol, Side.SERVER, data, False)
    assert text.startswith("server test:add")
    assert "result = 7" in text
    assert consumed == len(data)


def test_long_dump_of_known_message(protocol):
    data = add_message()
    text, consumed = bin_dump(protocol, Side.CLIENT, data, False)
    assert consumed == len(data)
    assert "int32 a = 123" in text
    assert "int32 b = 2456" in text
    assert "prefix = `test`" in text
    assert "Warning" not in text


def test_color_output_strips_to_plain(protocol):
    data = add_message()
    colored, _ = bin_dump(protocol, Side.CLIENT, data, True)
    plain, _ = bin_dump(protocol, Side.CLIENT, data, False)
    assert "\x1b" in colored
    assert strip_color(colored) == plain


def test_partial_message(protocol):
    text, consumed = bin_dump(protocol, Side.CLIENT, b"abc", False)
    assert text.startswith("partial message\n")
    assert "[x] Message was cut before header ends" in text
    assert consumed == 3


def test_partial_message_short(protocol):
    assert bin_dump_short(protocol, Side.CLIENT, b"abc", False) == ("partial message", 3)


def test_unknown_type_consumes_body(protocol):
    data = message("other", "thing", b"\x01\x02\x03")
    text, consumed = bin_dump(protocol, Side.CLIENT, data, False)
    assert "<unknown body type>" in text
    assert consumed == len(data)


def test_unknown_type_short(protocol):
    data = message("other", "thing", b"\x01\x02\x03")
    text, consumed = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert text.endswith("(unknown type)")
    assert consumed == Header.SIZE


def test_unknown_type_truncated_body(protocol):
    data = message("other", "thing", b"\x01\x02", length=5)
    text, consumed = bin_dump(protocol, Side.CLIENT, data, False)
    assert "Body cuts before specified body length (5), 3 bytes missing" in text
    assert consumed == len(data)


def test_cut_argument(protocol):
    data = message("test", "add", struct.pack("<i", 1) + b"\x00", length=8)
    short, consumed = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert "b = [cut]" in short
    assert consumed == len(data)
    long_text, _ = bin_dump(protocol, Side.CLIENT, data, False)
    assert "[x] Message was cut" in long_text


def test_extra_data_reported(protocol):
    data = message("test", "add", struct.pack("<ii", 1, 2) + b"\xff\xff")
    text, consumed = bin_dump(protocol, Side.CLIENT, data, False)
    assert "extra data" in text
    assert "Declared message body length (10) != real body length (8)" in text
    assert consumed == Header.SIZE + 8


def test_string_argument(protocol):
    body = struct.pack("<H", 5) + b"hello"
    data = message("test", "say", body)
    short, consumed = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert "text = `hello`" in short
    assert consumed == len(data)
    long_text, _ = bin_dump(protocol, Side.CLIENT, data, False)
    assert "string text of length 5 = `hello`" in long_text


def test_long_string_is_truncated_in_short_form(protocol):
    body = struct.pack("<H", 40) + b"x" * 40
    data = message("test", "say", body)
    short, _ = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert "`" + "x" * 32 + "`..." in short


def test_negative_int8(protocol):
    data = message("test", "flags", struct.pack("<bb", 1, -1))
    short, consumed = bin_dump_short(protocol, Side.CLIENT, data, False)
    assert "on = 1" in short
    assert "small = -1" in short
    assert consumed == len(data)


def test_consecutive_messages(protocol):
    stream = add_message() + message("test", "say", struct.pack("<H", 2) + b"hi")
    pos = 0
    seen = []
    while pos < len(stream):
        text, used = bin_dump_short(protocol, Side.CLIENT, stream[pos:], False)
        seen.append(text)
        pos += used
    assert pos == len(stream)
    assert len(seen) == 2