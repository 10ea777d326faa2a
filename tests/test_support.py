import logging
import unittest
from base64 import b64encode
from logging import Logger
from typing import Iterable, Mapping

from folksfinance.algorand.state import BYTES_TYPE, UINT_TYPE, TealKeyValue
from folksfinance.core.logging import configure_logging

configure_logging(level=logging.DEBUG)


class FolksFinanceTestCase(unittest.TestCase):
    maxDiff = None

    def get_logger(self, name: str) -> Logger:
        return logging.getLogger(f"{self.__class__.__name__}.{name}")


def pack_uint64s(values: Iterable[int]) -> bytes:
    return b"".join(value.to_bytes(8, "big") for value in values)


def teal_key_values(state: Mapping[str | bytes, bytes | int]) -> list[TealKeyValue]:
    """
    Builds application state in the algod REST format
    """

    def key_value(key: str | bytes, value: bytes | int) -> TealKeyValue:
        raw_key = key.encode() if isinstance(key, str) else key
        if isinstance(value, bytes):
            encoded = {"type": BYTES_TYPE, "bytes": b64encode(value).decode(), "uint": 0}
        else:
            encoded = {"type": UINT_TYPE, "bytes": "", "uint": value}
        return {"key": b64encode(raw_key).decode(), "value": encoded}

    return [key_value(key, value) for key, value in state.items()]


if __name__ == "__main__":
    unittest.main()
