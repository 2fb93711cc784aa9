"""
SimulationRunner - Tenderly transaction simulation

Runs a single transaction either on the stateless simulator or on a fork,
optionally on top of an earlier simulation (`root`).
"""

import logging
from typing import Any, Dict, Optional

from ..errors import OracleToolsError
from .client import TenderlyClient
from .models import (
    ZERO_ADDRESS,
    ResultUrl,
    SimulationFork,
    SimulationParams,
    SimulationResult,
)
from .parsing import parse_simulation_response, require
from .validation import validate_simulation_params

logger = logging.getLogger(__name__)


def to_quantity_hex(value: int) -> str:
    """`0x` hex with an even number of digits"""
    digits = format(value, "x")
    if len(digits) % 2:
        digits = "0" + digits
    return "0x" + digits


def simulation_path(fork: Optional[SimulationFork]) -> str:
    if fork is None:
        return "/simulate"
    return f"/fork/{fork.id}/simulate"


def create_simulation_request_body(params: SimulationParams) -> Dict[str, Any]:
    """Simulation API request body; the simulation is always saved with a full trace"""
    body: Dict[str, Any] = {
        "save": True,
        "save_if_fails": True,
        "simulation_type": "full",
        "network_id": str(params.chain_id),
        "from": params.from_address or ZERO_ADDRESS,
    }
    if params.to is not None:
        body["to"] = params.to
    if params.input is not None:
        body["input"] = params.input
    if params.value is not None:
        body["value"] = params.value
    if params.fork is not None and params.fork.root is not None:
        body["root"] = params.fork.root
    if params.timestamp_override is not None:
        body["block_header"] = {"timestamp": to_quantity_hex(params.timestamp_override)}
    if params.description is not None:
        body["description"] = params.description
    return body


class SimulationRunner:
    """Tenderly simulation runner"""

    def __init__(self, client: TenderlyClient):
        self.client = client

    async def simulate(self, params: SimulationParams) -> SimulationResult:
        """
        Simulate a transaction.

        Args:
            params: transaction and optional fork/root to run it on

        Returns:
            SimulationResult: status, gas used and dashboard link

        Raises:
            ValidationError: params are invalid (nothing is sent)
            TransportError: the simulation request failed
            MalformedResponseError: the response has an unexpected shape
        """
        validate_simulation_params(params)

        data = await self.client.request(
            "POST",
            simulation_path(params.fork),
            json=create_simulation_request_body(params),
        )
        simulation = require(parse_simulation_response(data), "simulation", data).simulation

        result = SimulationResult(
            id=simulation.id,
            status=simulation.status,
            gas_used=int(simulation.receipt.gas_used),
            result_url=await self.result_url(simulation.id, params.fork),
        )
        logger.debug(
            f"Simulation {result.id}: status={result.status} gas_used={result.gas_used}"
        )
        return result

    async def is_project_public(self) -> bool:
        """
        Check whether the project is publicly browsable.

        Any failure counts as not public.
        """
        env = self.client.env
        try:
            data = await self.client.request(
                "GET",
                f"/public/account/{env.user}/project/{env.project}",
                scoped=False,
            )
        except OracleToolsError as e:
            logger.debug(f"Project visibility check failed: {e}")
            return False

        project = data.get("project") if isinstance(data, dict) else None
        return isinstance(project, dict) and project.get("public") is True

    async def result_url(
        self, simulation_id: str, fork: Optional[SimulationFork] = None
    ) -> ResultUrl:
        """Public dashboard URL if the project is public, private one otherwise"""
        env = self.client.env
        base = self.client.dashboard_url

        if fork is not None:
            public_path, private_path = "fork-simulation", f"fork/{fork.id}/simulation"
        else:
            public_path, private_path = "simulator", "simulator"

        if await self.is_project_public():
            return ResultUrl(
                url=f"{base}/public/{env.user}/{env.project}/{public_path}/{simulation_id}",
                public=True,
            )
        return ResultUrl(
            url=f"{base}/{env.user}/{env.project}/{private_path}/{simulation_id}",
            public=False,
        )
