# dbuswire

A pure-Python library for the D-Bus wire format. It parses and checks type
signatures, builds typed parameter values, marshals parameters and message
headers into bytes, and reads message headers back. It uses only the standard
library.

## Installation

```
pip install dbuswire
```

To run the test suite:

```
pip install "dbuswire[test]"
pytest
```

## Signatures

`dbuswire.signature` turns signature strings into type objects (`BaseType`,
`ArrayType`, `StructType`, `DictType`, `VariantType`) and back.

```python
from dbuswire.signature import parse_description, types_to_str, iter_signatures

types = parse_description("a{s(dv)}i")
assert types_to_str(types) == "a{s(dv)}i"

assert list(iter_signatures("s(x)a(xxy)a{s(st)}", 0)) == ["s", "(x)", "a(xxy)", "a{s(st)}"]
```

Each type has `to_str()` and `alignment()`. A malformed signature raises
`SignatureError`. Its `kind` attribute holds a `SignatureErrorKind`, such as
`INVALID_SIGNATURE`, `SIGNATURE_TOO_LONG`, `NESTING_TOO_DEEP`,
`EMPTY_SIGNATURE` or `EMPTY_STRUCT`.

## Validation

`dbuswire.validation` checks names and paths before they are put on the wire.
The checkers are `validate_object_path`, `validate_interface`,
`validate_errorname`, `validate_busname`, `validate_membername` and
`validate_signature`. It also provides `validate_array`, `validate_dict` and
`validate_header_fields`. Each one raises `ValidationError`, with a
`ValidationErrorKind` in `kind`, when its input is invalid.

```python
from dbuswire.validation import validate_object_path, ValidationError

validate_object_path("/org/example/Object")
try:
    validate_object_path("org/example")
except ValidationError as err:
    print(err.kind)   # ValidationErrorKind.INVALID_OBJECT_PATH
```

## Parameters and containers

`dbuswire.params` provides `Base`, `Array`, `Struct`, `Dict` and `Variant`.
A `Base` pairs a value with its `BaseType` and checks that the value fits, for
example that an `UINT32` is in range. `to_param` converts plain Python values:
`bool` becomes a boolean, `str` a string, `float` a double and `int` a signed
64-bit integer (`x`). For other integer widths, build a `Base` directly.

`dbuswire.containers` has helpers that build containers and check their types:

```python
from dbuswire.containers import make_array, make_dict, make_struct, make_variant
from dbuswire.params import Base
from dbuswire.signature import BaseType

arr = make_array("s", ["a", "b"])
dct = make_dict("s", "u", {"one": Base(BaseType.UINT32, 1)})
st = make_struct([arr, dct])
var = make_variant(st)
print(st.make_signature())   # (asa{su})
```

`array_from_params` and `dict_from_mapping` infer the element types from the
first entry and raise `ConversionError` on empty input.

## Marshalling

`dbuswire.message.Message` holds a `MessageType`, flags, a `DynamicHeader` and
the body parameters. `dbuswire.marshal` writes parameters into a
`MarshalContext` (a byte buffer, a list of file descriptors and a
`ByteOrder`). `dbuswire.typed.marshal_as_variant` writes a parameter preceded
by its signature, and `dbuswire.typed.SignatureBuffer` is a growable signature
string.

`dbuswire.header.marshal` returns the fixed header and header fields for a
message, padded to 8 bytes; the body is appended by the caller.
`dbuswire.unmarshal` reads them back:

```python
from dbuswire.header import marshal
from dbuswire.marshal import MarshalContext, marshal_param
from dbuswire.params import Base
from dbuswire.signature import BaseType
from dbuswire.unmarshal import extract_body, unmarshal_dynamic_header, unmarshal_header
from dbuswire.wire import DynamicHeader, MessageType

ctx = MarshalContext()
marshal_param(Base(BaseType.UINT32, 7), ctx)
body = bytes(ctx.buf)

dynheader = DynamicHeader(interface="org.example.Iface", member="Changed", object="/org/example")
data = marshal(MessageType.SIGNAL, dynheader, 1, body, "u") + body

header = unmarshal_header(data)
fields, end = unmarshal_dynamic_header(header, data)
assert fields.member == "Changed"
assert extract_body(header, data, end) == body
```

Marshalling failures raise `MarshalError` and unmarshalling failures raise
`UnmarshalError`, both from `dbuswire.errors`. Each carries a `kind` that says
what went wrong.

## What it does not do

dbuswire works on bytes only. It does not connect to a bus, authenticate,
send or receive messages, or pass file descriptors over a socket. When reading
a message it parses the header and returns the body as raw bytes; it does not
decode the body back into parameters.