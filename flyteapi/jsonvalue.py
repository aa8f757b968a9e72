"""Parsing of arbitrary JSON documents."""

import json
from typing import IO, Any, Union

_WHITESPACE = " \t\n\r"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid character '{name[0]}' looking for beginning of value")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def parse_json(stream: Union[IO[str], IO[bytes], str, bytes]) -> Any:
    """Decode the first JSON value from a stream or string.

    Raises ValueError when no valid JSON value can be read.
    """
    raw = stream.read() if hasattr(stream, "read") else stream
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    text = raw.lstrip(_WHITESPACE)
    if not text:
        raise ValueError("could not create Json from reader: EOF")
    try:
        value, _ = _DECODER.raw_decode(text)
    except ValueError as exc:
        raise ValueError(f"could not create Json from reader: {exc}") from exc
    return value