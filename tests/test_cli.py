import io

import pytest

from bardak.cli import help_text, main, process
from bardak.codec import MessageCodec
from bardak.dump import strip_color
from bardak.protocol import Protocol, Side

ADD_DEFS = "client test:add(int32 a, int32 b);\nserver test:add(int32 a, int32 b);\n"


@pytest.fixture
def pan_file(tmp_path):
    path = tmp_path / "add.pan"
    path.write_text(ADD_DEFS)
    return path


def _add_message(side, a, b, msg_id=1):
    protocol = Protocol()
    protocol.load_defs(ADD_DEFS)
    return MessageCodec(protocol.find(side, "test", "add")).encode({"a": a, "b": b}, msg_id)


def test_help_text_mentions_options():
    text = help_text("prog")
    assert "Usage: prog [OPTIONS]... [FILES]..." in text
    assert "-i INC" in text


def test_no_arguments_prints_help(capsys):
    assert main([]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_help_option(capsys):
    assert main(["-h"]) == 0
    assert "Options are:" in capsys.readouterr().out


def test_unknown_option_fails(capsys):
    assert main(["-x"]) == 1
    assert "Known arguments are" in capsys.readouterr().out


def test_load_pan(pan_file):
    protocol = Protocol()
    out = io.StringIO()
    process(str(pan_file), protocol, out=out)
    assert "Defs loaded" in out.getvalue()
    assert len(protocol) == 2


def test_bad_pan_reports_error(tmp_path):
    path = tmp_path / "bad.pan"
    path.write_text("client foo")
    out = io.StringIO()
    process(str(path), Protocol(), out=out)
    text = strip_color(out.getvalue())
    assert "Expected `:` after prefix name" in text
    assert "[x] Failed to load defs: Invalid argument" in text


def test_missing_file(tmp_path):
    out = io.StringIO()
    process(str(tmp_path / "nope.pan"), Protocol(), out=out)
    assert out.getvalue().startswith("[x] Failed to stat")


def test_directory_is_ignored(tmp_path):
    out = io.StringIO()
    process(str(tmp_path), Protocol(), out=out)
    assert out.getvalue() == ""


def test_unknown_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("x")
    out = io.StringIO()
    process(str(path), Protocol(), out=out)
    assert "doesn't know what to do" in out.getvalue()


def test_header_generation(pan_file, tmp_path, capsys):
    header = tmp_path / "add.hpp"
    assert main([str(pan_file), "-i", "macros.hpp", str(header)]) == 0
    text = header.read_text()
    assert text.startswith("// GENERATED FILE -- DO NOT EDIT\n")
    assert '#include "macros.hpp"' in text
    assert "Writting header to" in capsys.readouterr().out


def test_header_open_failure(tmp_path, capsys):
    process(str(tmp_path / "missing" / "x.hpp"), Protocol(), out=io.StringIO())
    assert "Failed to open header for writting" in capsys.readouterr().err


def test_short_dump_of_bmsg(pan_file, tmp_path, capsys):
    bmsg = tmp_path / "demo.add.bmsg"
    bmsg.write_bytes(_add_message(Side.CLIENT, 123, 2456) + _add_message(Side.CLIENT, 1, 2, 2))
    assert main(["-l", str(pan_file), str(bmsg)]) == 0
    text = strip_color(capsys.readouterr().out)
    assert "a = 123" in text
    assert "b = 2456" in text
    assert text.count("client test:add") == 2


def test_server_side_dump(pan_file, tmp_path, capsys):
    bmsg = tmp_path / "srv.bmsg"
    bmsg.write_bytes(_add_message(Side.SERVER, 5, 6))
    assert main(["-s", str(pan_file), str(bmsg)]) == 0
    text = strip_color(capsys.readouterr().out)
    assert "server test:add" in text
    assert "int32 a = 5" in text