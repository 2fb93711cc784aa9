"""
Gas Profiling Helpers

Building blocks for comparing the gas cost of a protocol action with a regular
oracle against the same action with an unlocking oracle wrapper: labelled fork
setup, chained simulations and the final comparison.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field
from web3 import Web3

from .errors import HeadNotFoundError, ValidationError
from .simulation import (
    Fork,
    ForkManager,
    ForkParams,
    SimulationFork,
    SimulationParams,
    SimulationResult,
    SimulationRunner,
)

logger = logging.getLogger(__name__)


class SimulationStep(BaseModel):
    """One transaction of a simulation chain"""
    model_config = ConfigDict(populate_by_name=True)

    description: str
    to: Optional[str] = None
    input: Optional[str] = None
    value: Optional[str] = None
    from_address: Optional[str] = Field(None, alias="from")


class ProfileScenario(BaseModel):
    """
    Action to profile.

    `regular` and `unlocking` are run on separate forks of the same block
    position; the gas of the last step of each is compared. Setup
    transactions (e.g. contract deployments) are sent through the fork RPC
    endpoint and labelled before the variant's simulations, which then start
    from the resulting fork head. Simulations use the fork block timestamp
    unless `timestamp_override` is set.
    """
    name: str
    chain_id: int = 1
    block_number: Optional[int] = None
    tx_index: Optional[int] = None
    timestamp_override: Optional[int] = None
    regular_setup: List[SimulationStep] = Field(default_factory=list)
    regular: List[SimulationStep]
    unlocking_setup: List[SimulationStep] = Field(default_factory=list)
    unlocking: List[SimulationStep]


class GasComparison(BaseModel):
    """Gas used by the regular and the unlocking variant of one action"""
    name: str
    regular_gas: int = Field(..., ge=0)
    unlocking_gas: int = Field(..., ge=0)

    @property
    def difference(self) -> int:
        return self.unlocking_gas - self.regular_gas


def generated_description(alias: str) -> str:
    """Stable fork description derived from the alias"""
    return "Generated: " + Web3.to_hex(Web3.keccak(text=alias))


async def recreate_fork(
    manager: ForkManager,
    alias: str,
    chain_id: int,
    block_number: Optional[int] = None,
    tx_index: Optional[int] = None,
) -> Tuple[Fork, str]:
    """
    Replace the fork generated for `alias` with a fresh, shared one.

    Returns:
        (fork, shared dashboard URL)
    """
    description = generated_description(alias)
    existing = await manager.find_by_description(description)
    if existing is not None:
        logger.info(f"Deleting previous fork {existing.id} of {alias!r}")
        await manager.delete(existing.id)

    fork = await manager.create(
        ForkParams(
            chain_id=chain_id,
            block_number=block_number,
            tx_index=tx_index,
            alias=alias,
            description=description,
        )
    )
    share_url = await manager.share(fork.id)
    return fork, share_url


async def label_head(manager: ForkManager, fork_id: str, description: str) -> Fork:
    """
    Label the latest fork transaction.

    Transactions sent through the fork RPC endpoint (e.g. contract
    deployments) only show up as a new head, so the fork is refreshed first.

    Raises:
        HeadNotFoundError: the fork has no head
    """
    fork = await manager.get(fork_id)
    if fork.head_id is None:
        raise HeadNotFoundError(f"Fork {fork_id} head id not found")
    await manager.set_simulation_description(fork.id, fork.head_id, description)
    return fork


async def run_chain(
    runner: SimulationRunner,
    chain_id: int,
    fork_id: str,
    steps: Sequence[SimulationStep],
    root: Optional[str] = None,
    timestamp_override: Optional[int] = None,
) -> SimulationResult:
    """
    Simulate steps one after another, each on top of the previous one.

    Args:
        runner: simulation runner
        chain_id: network id
        fork_id: fork to simulate on
        steps: transactions in order
        root: simulation or head id the first step builds on; the fork's
            initial state when None
        timestamp_override: block timestamp used for every step

    Returns:
        Result of the last step

    Raises:
        ValidationError: steps is empty
    """
    if not steps:
        raise ValidationError("No simulation steps")

    result: Optional[SimulationResult] = None
    for step in steps:
        result = await runner.simulate(
            SimulationParams(
                chain_id=chain_id,
                to=step.to,
                input=step.input,
                value=step.value,
                from_address=step.from_address,
                timestamp_override=timestamp_override,
                fork=SimulationFork(id=fork_id, root=root),
                description=step.description,
            )
        )
        logger.debug(f"{step.description}: {result.gas_used} gas ({result.id})")
        root = result.id
    return result


def log_comparison(comparison: GasComparison) -> None:
    logger.info(f"{comparison.name} gas comparison with unlock:")
    logger.info(f"  Regular:   {comparison.regular_gas}")
    logger.info(f"  Unlocking: {comparison.unlocking_gas}")
    logger.info(f"  Gas difference: {comparison.difference}")


def summarize(comparisons: List[GasComparison]) -> List[dict]:
    """JSON-ready rows of the comparisons"""
    return [
        {
            "name": c.name,
            "regular_gas": c.regular_gas,
            "unlocking_gas": c.unlocking_gas,
            "difference": c.difference,
        }
        for c in comparisons
    ]


async def send_labelled(manager: ForkManager, fork: Fork, step: SimulationStep) -> Fork:
    """
    Send a transaction through the fork RPC endpoint and label the new head
    with the step description.

    Returns:
        The refreshed fork, `head_id` being the sent transaction
    """
    await manager.send_transaction(
        fork,
        from_address=step.from_address,
        to=step.to,
        data=step.input,
        value=step.value,
    )
    return await label_head(manager, fork.id, step.description)


async def _profile_variant(
    manager: ForkManager,
    runner: SimulationRunner,
    scenario: ProfileScenario,
    variant: str,
    setup: Sequence[SimulationStep],
    steps: Sequence[SimulationStep],
) -> SimulationResult:
    alias = f"{variant.capitalize()} {scenario.name}"
    fork, share_url = await recreate_fork(
        manager, alias, scenario.chain_id, scenario.block_number, scenario.tx_index
    )

    timestamp = scenario.timestamp_override
    if timestamp is None:
        timestamp = await manager.get_block_timestamp(fork, scenario.block_number)

    root: Optional[str] = None
    for step in setup:
        fork = await send_labelled(manager, fork, step)
        root = fork.head_id

    result = await run_chain(
        runner,
        scenario.chain_id,
        fork.id,
        steps,
        root=root,
        timestamp_override=timestamp,
    )
    logger.info(f"Simulated {alias} in {result.result_url.url}")
    logger.info(f"  Consumed gas: {result.gas_used}")
    logger.info(f"  Fork URL: {share_url}")
    return result


async def profile_scenario(
    manager: ForkManager, runner: SimulationRunner, scenario: ProfileScenario
) -> GasComparison:
    """Run both variants of a scenario and compare their gas"""
    regular = await _profile_variant(
        manager, runner, scenario, "regular", scenario.regular_setup, scenario.regular
    )
    unlocking = await _profile_variant(
        manager, runner, scenario, "unlocking", scenario.unlocking_setup, scenario.unlocking
    )
    comparison = GasComparison(
        name=scenario.name,
        regular_gas=regular.gas_used,
        unlocking_gas=unlocking.gas_used,
    )
    log_comparison(comparison)
    return comparison
