"""
RedStone Oracle Tests
"""

import pytest
from pydantic import ValidationError as PydanticValidationError
from eth_abi import decode
from web3 import Web3

from oracle_gas_tools.oracles import redstone


def package(price: int, timestamp_ms: int = 1_700_000_000_000) -> redstone.SignedDataPackage:
    return redstone.SignedDataPackage.model_validate(
        {
            "dataPackage": {
                "timestampMilliseconds": timestamp_ms,
                "dataPoints": [{"value": price.to_bytes(32, "big")}],
            },
            "signature": "0x" + "00" * 65,
        }
    )


class TestPrices:
    """Price decoding and median"""

    def test_parse_price(self):
        assert redstone.parse_price((180_000_000_000).to_bytes(32, "big")) == 180_000_000_000
        assert redstone.parse_price("0x0100") == 256

    def test_median_odd(self):
        assert redstone.pick_median([3, 1, 2]) == 2

    def test_median_even_rounds_down(self):
        assert redstone.pick_median([4, 1, 3, 2]) == 2
        assert redstone.pick_median([4, 2]) == 3

    def test_median_even_large_values_exact(self):
        low, high = 2**60 + 1, 2**60 + 4
        assert redstone.pick_median([high, low]) == 2**60 + 2

    def test_median_empty(self):
        with pytest.raises(ValueError):
            redstone.pick_median([])


class TestCalldata:
    """Payload encoding"""

    def test_encode_price_payload(self):
        calldata = redstone.encode_price_payload("abcd", 1234, 5678)
        payload, timestamp, price = decode(
            ["bytes", "uint256", "uint256"], Web3.to_bytes(hexstr=calldata)
        )
        assert payload == bytes.fromhex("abcd")
        assert (timestamp, price) == (1234, 5678)

    def test_build_calldata(self):
        packages = {"ETH": [package(300), package(100), package(200)]}
        prepared = []

        def prepare_payload(signed_packages, suffix):
            prepared.append((list(signed_packages), suffix))
            return "beef"

        calldata = redstone.build_calldata(packages, "ETH", prepare_payload)

        payload, timestamp, price = decode(
            ["bytes", "uint256", "uint256"], Web3.to_bytes(hexstr=calldata)
        )
        assert payload == bytes.fromhex("beef")
        assert timestamp == 1_700_000_000_000
        assert price == 200
        assert prepared[0][1] == ""
        assert len(prepared[0][0]) == 3

    def test_unknown_feed(self):
        with pytest.raises(KeyError):
            redstone.build_calldata({}, "ETH", lambda packages, suffix: "")


class TestDataPoints:
    """Data point value decoding"""

    def test_hex_string_value(self):
        signed = redstone.SignedDataPackage.model_validate(
            {
                "dataPackage": {
                    "timestampMilliseconds": 1,
                    "dataPoints": [{"value": "0x0100"}],
                },
                "signature": "0x00",
            }
        )
        value = signed.data_package.data_points[0].value
        assert value == b"\x01\x00"
        assert redstone.parse_price(value) == 256

    def test_invalid_hex_string(self):
        with pytest.raises(PydanticValidationError):
            redstone.DataPoint.model_validate({"value": "0xzz"})
