# bardak

Tools for the `binmsg` binary message format, plus the interfaces that
server modules are written against.

A `binmsg` message is a fixed 24-byte header followed by a body
(all integers little-endian):

| field   | size | meaning                                  |
|---------|------|------------------------------------------|
| prefix  | 8    | message namespace, zero padded           |
| type    | 8    | message type within the prefix           |
| id      | 4    | sequence number                          |
| len     | 2    | body length in bytes                     |
| flags   | 2    | reserved                                 |

Message bodies are described in `.pan` protocol definition files:

```
# comments start with a hash
client test:add(int32 a, int32 b);
server srv:name(string name);
```

Argument types are `id`, `char64`, `int8`, `int16`, `int32`, `int64`,
`float`, `double`, `string`, `blob` and `bool`. `string` and `blob` values
are preceded by a 2-byte length. Prefixes and type names are at most
8 bytes long.

## Installing

```
pip install .
```

## The protocol analyzer

`bardak-pan` loads protocol definitions, dumps recorded messages and writes
C++ headers for the loaded message types. Files are handled in the order
given, and what happens to each depends on its kind:

- `.pan` — protocol definitions are loaded
- `.bmsg` — a recorded stream of messages is dumped message by message
- `.h`, `.hpp` — a header with all message types loaded so far is written
  (the file is created if it does not exist)
- directories are skipped; any other file is reported as unknown

```
bardak-pan add.pan demo.add.bmsg
bardak-pan -s -l srv.pan server-traffic.bmsg
bardak-pan -i libpan_cxx_macros.hpp srv.pan srv_proto.hpp
```

Options:

- `-h` print help
- `-c` dumps are from a client (the default)
- `-s` dumps are from a server
- `-l` one line per message
- `-i INC` the file generated headers include for their macros
  (default `libpan_cxx_macros.hpp`)

Run without arguments, it prints the help.

## Using the library

```python
from bardak.protocol import Protocol, Side
from bardak.codec import MessageCodec
from bardak.dump import bin_dump

protocol = Protocol()
protocol.load_defs("client test:add(int32 a, int32 b);")

add = MessageCodec(protocol.find(Side.CLIENT, "test", "add"))
data = add.encode({"a": 123, "b": 2456}, 1, 0)
print(add.decode(data))          # {'a': 123, 'b': 2456}

text, used = bin_dump(protocol, Side.CLIENT, data, False)
print(text)
```

The modules:

- `bardak.binmsg` — `Char64`, `Header`, `RawMessage`, and `MessageBuffer`,
  which splits a byte stream into whole messages as data arrives.
- `bardak.protocol` — `.pan` parsing (`Protocol.load_defs`,
  `Protocol.load_defs_from_file`), lookup with `Protocol.find` and
  `Protocol.bin_match`; syntax errors raise `PanSyntaxError`.
- `bardak.dump` — `bin_dump` and `bin_dump_short` describe a message and
  return the text together with the number of bytes it took; `hexdump` and
  `strip_color` are the helpers they use.
- `bardak.codec` — `MessageCodec` encodes field values to a whole message
  and decodes them back, raising `DecodeError` on malformed input;
  `srv_protocol()` gives the `srv` message set a server speaks.
- `bardak.codegen` — `generate_header` writes a C++ header for every loaded
  message type.
- `bardak.interfaces` — `Event`, `BmClient`, `BmServer`, `BmServerModule`,
  `Timer`, `Map`, `Unit`, `Tile`, `RoleMgr` and `LogStream`: the contracts
  between a server and its modules.

## What is not included

The package defines the server and module interfaces but has no server of
its own: nothing here listens on a port, reads a server configuration file
or loads modules. A program that wants to host modules has to implement
`BmServer` and `BmClient` itself.

## Running the tests

```
pip install .[test]
pytest
```