# site_loader/remote/abi.py
"""
Minimal call-data encoding and return-data decoding for ``eth_call``.

Only the shapes the loader needs are supported: static words (``address``,
``uint*``), static tuples of those, and dynamic ``bytes``/``string``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Sequence

from Crypto.Hash import keccak

from site_loader.errors import RemoteCallError

WORD = 32


@lru_cache(maxsize=64)
def selector(signature: str) -> bytes:
    """First four bytes of Keccak-256 of a canonical signature like ``read()``."""
    digest = keccak.new(digest_bits=256)
    digest.update(signature.encode("ascii"))
    return digest.digest()[:4]


def encode_uint(value: int) -> bytes:
    if value < 0:
        raise ValueError("uint cannot be negative")
    return value.to_bytes(WORD, "big")


def encode_call(signature: str, args: Sequence[int] = ()) -> bytes:
    """Call data for a function taking only ``uint256`` arguments."""
    return selector(signature) + b"".join(encode_uint(a) for a in args)


def _words(data: bytes, count: int) -> List[bytes]:
    if len(data) < count * WORD:
        raise RemoteCallError(f"return data too short: {len(data)} bytes, need {count * WORD}")
    return [data[i * WORD : (i + 1) * WORD] for i in range(count)]


def decode_uint(data: bytes) -> int:
    (word,) = _words(data, 1)
    return int.from_bytes(word, "big")


def decode_address(data: bytes) -> bytes:
    (word,) = _words(data, 1)
    return word[12:]


def decode_static_tuple(data: bytes, types: Sequence[str]) -> tuple:
    """Decode a tuple made of ``address`` and ``uint*`` members."""
    out = []
    for kind, word in zip(types, _words(data, len(types))):
        if kind == "address":
            out.append(word[12:])
        elif kind.startswith("uint"):
            out.append(int.from_bytes(word, "big"))
        else:
            raise ValueError(f"unsupported static type: {kind}")
    return tuple(out)


def decode_bytes(data: bytes) -> bytes:
    """Decode a single dynamic ``bytes`` return value."""
    (head,) = _words(data, 1)
    offset = int.from_bytes(head, "big")
    if offset + WORD > len(data):
        raise RemoteCallError(f"bad dynamic offset {offset} for {len(data)} bytes")
    length = int.from_bytes(data[offset : offset + WORD], "big")
    start = offset + WORD
    if start + length > len(data):
        raise RemoteCallError(f"dynamic length {length} exceeds return data")
    return data[start : start + length]


def decode_string(data: bytes) -> str:
    try:
        return decode_bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RemoteCallError(f"string is not valid UTF-8: {exc}") from exc


def encode_bytes_result(payload: bytes) -> bytes:
    """Return-data encoding of one dynamic ``bytes`` value (used by test servers)."""
    padded = payload + b"\x00" * (-len(payload) % WORD)
    return encode_uint(WORD) + encode_uint(len(payload)) + padded
