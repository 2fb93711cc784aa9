"""
Parameter validation for fork and simulation requests.

Every check runs before any request is sent and raises
:class:`~oracle_gas_tools.errors.ValidationError`.
"""

import re
from typing import Optional, Union

from web3 import Web3

from ..errors import ValidationError
from .models import ForkParams, SimulationParams


_BYTE_HEX = re.compile(r"0x(?:[0-9a-fA-F]{2})*")
_HEX_INT = re.compile(r"0[xX][0-9a-fA-F]+")
_DEC_INT = re.compile(r"-?[0-9]+")


def is_byte_hex(value: str) -> bool:
    """`0x` followed by whole bytes"""
    return isinstance(value, str) and _BYTE_HEX.fullmatch(value) is not None


def is_quantity_hex(value: str) -> bool:
    """`0x` hex integer"""
    return isinstance(value, str) and _HEX_INT.fullmatch(value) is not None


def parse_amount(value: Union[str, int]) -> Optional[int]:
    """Parse a decimal or `0x` hex integer, None if it is not one"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    if _HEX_INT.fullmatch(value):
        return int(value, 16)
    if _DEC_INT.fullmatch(value):
        return int(value, 10)
    return None


def validate_fork_params(params: ForkParams) -> None:
    """Check chain id, block number and transaction index ranges"""
    if params.chain_id <= 0:
        raise ValidationError(f"Invalid chainId: {params.chain_id}")
    if params.block_number is not None and params.block_number < 0:
        raise ValidationError(f"Invalid blockNumber: {params.block_number}")
    if params.block_number is None and params.tx_index is not None:
        raise ValidationError("txIndex cannot be specified without blockNumber")
    if params.tx_index is not None and params.tx_index < 0:
        raise ValidationError(f"Invalid txIndex: {params.tx_index}")


def validate_address(address: str, name: str = "address") -> None:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValidationError(f"Invalid {name}: {address}")


def validate_amount(value: Union[str, int], name: str) -> int:
    """Check that value is a non-negative integer and return it"""
    amount = parse_amount(value)
    if amount is None or amount < 0:
        raise ValidationError(f"Invalid {name}: {value}")
    return amount


def validate_simulation_params(params: SimulationParams) -> None:
    """Check addresses, calldata, value and timestamp override"""
    if params.to is not None:
        validate_address(params.to, "to address")
    if params.from_address is not None:
        validate_address(params.from_address, "from address")
    if params.input is not None and not is_byte_hex(params.input):
        raise ValidationError(f"Invalid input: {params.input}")
    if params.value is not None:
        validate_amount(params.value, "value")
    if params.timestamp_override is not None and params.timestamp_override < 0:
        raise ValidationError(f"Invalid timestampOverride: {params.timestamp_override}")
