"""
RedStone Oracle

Turns RedStone signed data packages into `(bytes payload, uint256 timestamp,
uint256 medianPrice)` calldata. Requesting packages and serializing them into
the RedStone payload format is left to the RedStone SDK, passed in as
callables.
"""

import logging
from typing import Callable, Dict, List, Sequence, Union

from eth_abi import encode
from pydantic import BaseModel, Field, field_validator
from web3 import Web3

logger = logging.getLogger(__name__)


class DataPoint(BaseModel):
    value: bytes = Field(..., description="Big-endian encoded price")

    @field_validator("value", mode="before")
    @classmethod
    def decode_hex_value(cls, v):
        """Accept `0x` hex strings as well as raw bytes"""
        if isinstance(v, str):
            return Web3.to_bytes(hexstr=v)
        return v


class DataPackage(BaseModel):
    timestamp_milliseconds: int = Field(..., alias="timestampMilliseconds")
    data_points: List[DataPoint] = Field(..., alias="dataPoints")


class SignedDataPackage(BaseModel):
    data_package: DataPackage = Field(..., alias="dataPackage")
    signature: str


PreparePayload = Callable[[Sequence[SignedDataPackage], str], str]


def parse_price(value: Union[bytes, str]) -> int:
    """Decode a big-endian data point value"""
    if isinstance(value, str):
        value = Web3.to_bytes(hexstr=value)
    return int.from_bytes(value, "big")


def pick_median(prices: Sequence[int]) -> int:
    """
    Median of the prices; for an even count, the mean of the middle two
    rounded down.

    Raises:
        ValueError: prices is empty
    """
    if not prices:
        raise ValueError("Cannot pick median of empty array")
    ordered = sorted(prices)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) // 2
    return ordered[middle]


def encode_price_payload(payload: str, timestamp_ms: int, median_price: int) -> str:
    """ABI-encode (bytes, uint256, uint256)"""
    if not payload.startswith("0x"):
        payload = "0x" + payload
    encoded = encode(
        ["bytes", "uint256", "uint256"],
        [Web3.to_bytes(hexstr=payload), timestamp_ms, median_price],
    )
    return "0x" + encoded.hex()


def build_calldata(
    packages_by_feed: Dict[str, List[SignedDataPackage]],
    feed: str,
    prepare_payload: PreparePayload,
) -> str:
    """
    Encode one feed's signed packages with their median price.

    Args:
        packages_by_feed: signed packages keyed by data feed id
        feed: data feed id, e.g. "ETH"
        prepare_payload: RedStone payload serializer, called with an empty
            unsigned metadata suffix

    Raises:
        KeyError: feed not in packages_by_feed
        ValueError: feed has no packages
    """
    packages = packages_by_feed[feed]
    prices = [parse_price(p.data_package.data_points[0].value) for p in packages]
    median_price = pick_median(prices)
    payload = prepare_payload(packages, "")
    timestamp_ms = packages[0].data_package.timestamp_milliseconds
    logger.debug(f"{feed}: {len(packages)} packages, median {median_price}")
    return encode_price_payload(payload, timestamp_ms, median_price)
