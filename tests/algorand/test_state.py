import unittest

from folksfinance.algorand.state import (
    decode_state,
    encode_state_key,
    get_parsed_value_from_state,
    parse_bits_as_booleans,
    parse_uint64s,
    parse_uint8s,
    require_bytes,
)
from folksfinance.errors import InvalidInput
from tests.test_support import FolksFinanceTestCase, pack_uint64s, teal_key_values


class StateTestCase(FolksFinanceTestCase):
    def setUp(self) -> None:
        self.state = teal_key_values(
            {
                "time_delay": 3_600,
                "pa": b"\x01\x02",
                b"\x00": pack_uint64s([1, 2, 3]),
            }
        )

    def test_encode_state_key(self):
        self.assertEqual(encode_state_key("pa"), "cGE=")
        self.assertEqual(encode_state_key(b"pa"), "cGE=")

    def test_get_parsed_value_from_state(self):
        self.assertEqual(get_parsed_value_from_state(self.state, "time_delay"), 3_600)
        self.assertEqual(get_parsed_value_from_state(self.state, "pa"), b"\x01\x02")
        self.assertEqual(get_parsed_value_from_state(self.state, b"\x00"), pack_uint64s([1, 2, 3]))
        self.assertIsNone(get_parsed_value_from_state(self.state, "missing"))

    def test_decode_state(self):
        self.assertEqual(
            decode_state(self.state),
            {
                b"time_delay": 3_600,
                b"pa": b"\x01\x02",
                b"\x00": pack_uint64s([1, 2, 3]),
            },
        )
        self.assertEqual(decode_state([]), {})


class ParseTestCase(FolksFinanceTestCase):
    def test_parse_uint64s(self):
        self.assertEqual(parse_uint64s(pack_uint64s([0, 1, 2**64 - 1])), [0, 1, 2**64 - 1])
        self.assertEqual(parse_uint64s(b""), [])

        with self.assertRaises(InvalidInput):
            parse_uint64s(bytes(9))

    def test_parse_uint8s(self):
        self.assertEqual(parse_uint8s(b"\x00\x01\xff"), [0, 1, 255])

    def test_parse_bits_as_booleans(self):
        self.assertEqual(
            parse_bits_as_booleans(b"\xa1"),
            [True, False, True, False, False, False, False, True],
        )
        self.assertEqual(parse_bits_as_booleans(b"\x00"), [False] * 8)

    def test_require_bytes(self):
        self.assertEqual(require_bytes(b"u", "u"), b"u")
        for value in [None, 1]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidInput):
                    require_bytes(value, "u")


if __name__ == "__main__":
    unittest.main()
