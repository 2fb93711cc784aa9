"""
Tenderly Response Parsing

Shape checks for Tenderly API responses. Each parser returns a
``(value, error)`` pair, exactly one of which is None, so that callers decide
how to surface a contract mismatch.
"""

import json
import re
from typing import Any, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import MalformedResponseError, describe_validation_errors
from .models import (
    Fork,
    ForkAccount,
    ForkListResponse,
    ForkResponse,
    SimulationForkPayload,
    SimulationResponse,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

ParseOutcome = Tuple[Optional[ModelT], Optional[str]]


def _parse(model: Type[ModelT], data: Any) -> ParseOutcome:
    if not isinstance(data, dict):
        return None, f"expected a JSON object, got {type(data).__name__}"
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        return None, describe_validation_errors(e)


def parse_fork_response(data: Any) -> ParseOutcome:
    """Check a fork create/get response"""
    return _parse(ForkResponse, data)


def parse_fork_list_response(data: Any) -> ParseOutcome:
    """Check a fork listing response"""
    return _parse(ForkListResponse, data)


def parse_simulation_response(data: Any) -> ParseOutcome:
    """Check a simulation response, including that gasUsed holds an integer"""
    response, error = _parse(SimulationResponse, data)
    if error is not None:
        return None, error
    if not re.fullmatch(r"[0-9]+", response.simulation.receipt.gas_used):
        return None, (
            "simulation.receipt.gasUsed: not an integer: "
            f"{response.simulation.receipt.gas_used!r}"
        )
    return response, None


def require(outcome: ParseOutcome, api: str, data: Any) -> ModelT:
    """
    Unwrap a parse outcome.

    Raises:
        MalformedResponseError: if the outcome carries an error
    """
    value, error = outcome
    if error is not None:
        raise MalformedResponseError(
            f"Failed to parse Tenderly {api} API response ({error}): {_dump(data)}",
            payload=data,
        )
    return value


def _dump(data: Any) -> str:
    try:
        return json.dumps(data)
    except (TypeError, ValueError):
        return repr(data)


def select_head_id(
    global_head: Optional[str], root_transaction_id: Optional[str]
) -> Optional[str]:
    """
    Pick the fork head id.

    ``global_head`` exists once the fork has been interacted with and wins
    over ``root_transaction.id``, which is only sent on fork creation.
    """
    if global_head:
        return global_head
    if root_transaction_id:
        return root_transaction_id
    return None


def fork_from_payload(
    payload: SimulationForkPayload, root_transaction_id: Optional[str] = None
) -> Fork:
    """Map a `simulation_fork` payload to a Fork"""
    return Fork(
        id=payload.id,
        block_number=payload.block_number,
        tx_index=payload.transaction_index,
        accounts=[
            ForkAccount(address=address, private_key=private_key)
            for address, private_key in payload.accounts.items()
        ],
        rpc_url=payload.rpc_url,
        head_id=select_head_id(payload.global_head, root_transaction_id),
    )


def fork_from_response(response: ForkResponse) -> Fork:
    """Map a fork API response to a Fork"""
    root_id = response.root_transaction.id if response.root_transaction else None
    return fork_from_payload(response.simulation_fork, root_id)
