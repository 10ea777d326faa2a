"""
Decodes Algorand application state snapshots.

State is expected in the algod REST format, i.e., a list of TEAL key-values:

.. code-block:: python

    [
        {"key": "<base64>", "value": {"type": 1, "bytes": "<base64>", "uint": 0}},
        {"key": "<base64>", "value": {"type": 2, "bytes": "", "uint": 42}},
    ]

Fetching the state is the caller's concern.
"""

from base64 import b64decode, b64encode
from typing import Any, Iterable

from folksfinance.errors import InvalidInput

TealKeyValue = dict[str, Any]

# TEAL value types
BYTES_TYPE = 1
UINT_TYPE = 2


def encode_state_key(key: str | bytes) -> str:
    """
    :return: base64 encoded state key
    """
    if isinstance(key, str):
        key = key.encode()
    return b64encode(key).decode()


def get_parsed_value_from_state(state: Iterable[TealKeyValue], key: str | bytes) -> bytes | int | None:
    """
    :param key: raw state key - str keys are utf-8 encoded
    :return: bytes for byte slice values, int for uint values, None if the key does not exist
    """
    encoded_key = encode_state_key(key)
    for entry in state:
        if entry["key"] != encoded_key:
            continue
        value = entry["value"]
        if value["type"] == BYTES_TYPE:
            return b64decode(value["bytes"])
        if value["type"] == UINT_TYPE:
            return int(value["uint"])
        return None
    return None


def decode_state(state: Iterable[TealKeyValue]) -> dict[bytes, bytes | int]:
    """
    Decodes all state key-values
    """
    decoded: dict[bytes, bytes | int] = {}
    for entry in state:
        value = entry["value"]
        decoded[b64decode(entry["key"])] = (
            b64decode(value["bytes"]) if value["type"] == BYTES_TYPE else int(value["uint"])
        )
    return decoded


def parse_uint64s(value: bytes) -> list[int]:
    """
    Parses a byte slice of packed big-endian uint64s.

    :exception InvalidInput: if the byte slice length is not a multiple of 8
    """
    if len(value) % 8:
        raise InvalidInput(f"byte slice is not packed uint64s: length={len(value)}")
    return [int.from_bytes(value[i : i + 8], "big") for i in range(0, len(value), 8)]


def parse_uint8s(value: bytes) -> list[int]:
    return list(value)


def parse_bits_as_booleans(value: bytes) -> list[bool]:
    """
    Parses the bits of a single byte, most significant bit first
    """
    byte = int.from_bytes(value, "big") & 0xFF
    return [bool(byte >> shift & 1) for shift in range(7, -1, -1)]


def require_bytes(value: bytes | int | None, key: str) -> bytes:
    """
    :exception InvalidInput: if the state value is not a byte slice
    """
    if not isinstance(value, bytes):
        raise InvalidInput(f"expected byte slice for state key: {key}")
    return value
