"""
ForkManager - Tenderly fork lifecycle

Creates, inspects, shares, deletes and mutates Tenderly forks.
"""

import logging
from typing import Any, Dict, Optional, Union

from web3 import Web3

from ..errors import HeadNotFoundError, MalformedResponseError, ValidationError
from .client import TenderlyClient
from .models import Fork, ForkParams
from .parsing import (
    fork_from_payload,
    fork_from_response,
    parse_fork_list_response,
    parse_fork_response,
    require,
)
from .validation import (
    is_byte_hex,
    is_quantity_hex,
    validate_address,
    validate_amount,
    validate_fork_params,
)

logger = logging.getLogger(__name__)


def create_fork_request_body(params: ForkParams) -> Dict[str, Any]:
    """Fork API request body, optional members only when set"""
    body: Dict[str, Any] = {"network_id": str(params.chain_id)}
    if params.block_number is not None:
        body["block_number"] = params.block_number
    if params.tx_index is not None:
        body["transaction_index"] = params.tx_index
    if params.alias is not None:
        body["alias"] = params.alias
    if params.description is not None:
        body["description"] = params.description
    return body


class ForkManager:
    """
    Tenderly fork manager

    All operations go through the given :class:`TenderlyClient` and its
    environment.
    """

    def __init__(self, client: TenderlyClient):
        self.client = client

    def _fork_path(self, fork_id: str) -> str:
        return f"/fork/{fork_id}"

    async def create(self, params: ForkParams) -> Fork:
        """
        Create a fork.

        Args:
            params: chain id and optional block/transaction position

        Returns:
            Fork: the new fork; `head_id` is the root transaction id

        Raises:
            ValidationError: params are invalid (nothing is sent)
            TransportError: the API request failed
            MalformedResponseError: the response has an unexpected shape
        """
        validate_fork_params(params)

        data = await self.client.request(
            "POST", "/fork", json=create_fork_request_body(params)
        )
        fork = fork_from_response(require(parse_fork_response(data), "fork", data))
        logger.info(
            f"Created fork {fork.id} on chain {params.chain_id} at block {fork.block_number}"
        )
        return fork

    async def get(self, fork_id: str) -> Fork:
        """Fetch a fork by id"""
        data = await self.client.request("GET", self._fork_path(fork_id))
        return fork_from_response(require(parse_fork_response(data), "fork", data))

    async def share(self, fork_id: str) -> str:
        """
        Make a fork publicly visible.

        Returns:
            Dashboard URL of the shared fork
        """
        await self.client.request("POST", self._fork_path(fork_id) + "/share", json={})
        logger.info(f"Shared fork {fork_id}")
        return f"{self.client.dashboard_url}/shared/fork/{fork_id}/transactions"

    async def unshare(self, fork_id: str) -> None:
        await self.client.request("POST", self._fork_path(fork_id) + "/unshare", json={})
        logger.info(f"Unshared fork {fork_id}")

    async def delete(self, fork_id: str) -> None:
        await self.client.request("DELETE", self._fork_path(fork_id))
        logger.info(f"Deleted fork {fork_id}")

    async def set_balance(
        self, fork_id: str, address: str, balance_wei: Union[str, int]
    ) -> str:
        """
        Set the native balance of an account on a fork.

        The balance is set through the fork's own RPC endpoint, which moves the
        fork head, so the fork is fetched again afterwards.

        Args:
            fork_id: fork to modify
            address: account address
            balance_wei: new balance in wei (decimal or `0x` hex)

        Returns:
            The new fork head id

        Raises:
            ValidationError: invalid address or negative/non-integer balance
            HeadNotFoundError: the refreshed fork still has no head id
        """
        validate_address(address)
        balance = validate_amount(balance_wei, "balance")

        fork = await self.get(fork_id)
        await self.client.rpc(
            fork.rpc_url, "tenderly_setBalance", [[address], Web3.to_hex(balance)]
        )

        updated = await self.get(fork_id)
        if updated.head_id is None:
            raise HeadNotFoundError(f"Failed to get updated head id of fork {fork_id}")
        logger.debug(f"Set balance of {address} on fork {fork_id} to {balance}")
        return updated.head_id

    async def find_by_description(self, description: str) -> Optional[Fork]:
        """
        Find the first fork whose description matches exactly.

        Returns:
            The fork, or None when no fork matches
        """
        data = await self.client.request("GET", "/forks")
        listing = require(parse_fork_list_response(data), "fork list", data)

        for payload in listing.simulation_forks:
            if payload.description == description:
                return fork_from_payload(payload)
        return None

    async def set_simulation_description(
        self, fork_id: str, simulation_id: str, description: str
    ) -> None:
        """Label a simulation shown in the fork dashboard"""
        await self.client.request(
            "PUT",
            f"{self._fork_path(fork_id)}/transaction/{simulation_id}",
            json={"description": description},
        )

    async def get_block_timestamp(self, fork: Fork, block_number: Optional[int] = None) -> int:
        """
        Read a block timestamp through the fork RPC endpoint.

        Args:
            fork: fork whose RPC endpoint is queried
            block_number: block to read, latest when None

        Raises:
            MalformedResponseError: the block has no hex `timestamp`
        """
        tag = "latest" if block_number is None else Web3.to_hex(block_number)
        block = await self.client.rpc(fork.rpc_url, "eth_getBlockByNumber", [tag, False])
        timestamp = block.get("timestamp") if isinstance(block, dict) else None
        if not is_quantity_hex(timestamp):
            raise MalformedResponseError(
                f"Block {tag} of fork {fork.id} has no timestamp: {block!r}", payload=block
            )
        return int(timestamp, 16)

    async def send_transaction(
        self,
        fork: Fork,
        from_address: Optional[str] = None,
        to: Optional[str] = None,
        data: Optional[str] = None,
        value: Optional[Union[str, int]] = None,
    ) -> str:
        """
        Submit a transaction through the fork RPC endpoint.

        Contract deployments leave `to` unset. The transaction becomes the new
        fork head.

        Args:
            fork: fork to send on
            from_address: sender, the first fork account when None
            to: recipient
            data: calldata or contract creation code
            value: wei, decimal or `0x` hex

        Returns:
            Transaction hash

        Raises:
            ValidationError: invalid transaction fields or no sender available
        """
        if from_address is None:
            if not fork.accounts:
                raise ValidationError(f"Fork {fork.id} has no accounts to send from")
            from_address = fork.accounts[0].address
        validate_address(from_address, "from address")
        tx: Dict[str, Any] = {"from": from_address}
        if to is not None:
            validate_address(to, "to address")
            tx["to"] = to
        if data is not None:
            if not is_byte_hex(data):
                raise ValidationError(f"Invalid data: {data}")
            tx["data"] = data
        if value is not None:
            tx["value"] = Web3.to_hex(validate_amount(value, "value"))

        tx_hash = await self.client.rpc(fork.rpc_url, "eth_sendTransaction", [tx])
        if not isinstance(tx_hash, str):
            raise MalformedResponseError(
                f"eth_sendTransaction on fork {fork.id} returned {tx_hash!r}", payload=tx_hash
            )
        logger.info(f"Sent transaction {tx_hash} on fork {fork.id}")
        return tx_hash
