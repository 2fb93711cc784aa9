"""
Tenderly Fork and Simulation Data Models

Caller-facing parameters and results, plus the subset of the Tenderly wire
format that is actually read.
"""

from typing import Any, Optional, Dict, List

from pydantic import BaseModel, Field, ConfigDict, StrictBool, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError, describe_validation_errors


ZERO_ADDRESS = "0x" + "0" * 40


class CallerParams(BaseModel):
    """
    Parameters built by callers.

    Malformed input raises :class:`~oracle_gas_tools.errors.ValidationError`
    instead of pydantic's own error.
    """

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {type(self).__name__}: {describe_validation_errors(e)}"
            ) from e

    @classmethod
    def model_validate(cls, obj: Any, **kwargs):
        try:
            return super().model_validate(obj, **kwargs)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {cls.__name__}: {describe_validation_errors(e)}"
            ) from e


# =============================================================================
# Forks
# =============================================================================


class ForkParams(CallerParams):
    """Fork creation parameters"""
    chain_id: StrictInt = Field(..., description="Network id of the forked chain")
    block_number: Optional[StrictInt] = Field(None, description="Fork block (latest when unset)")
    tx_index: Optional[StrictInt] = Field(None, description="Transaction index within block_number")
    alias: Optional[str] = Field(None, description="Dashboard display name")
    description: Optional[str] = Field(None, description="Free-form fork description")


class ForkAccount(BaseModel):
    """Pre-funded fork account"""
    address: str
    private_key: str


class Fork(BaseModel):
    """Fork as returned to the caller"""
    id: str = Field(..., description="Tenderly fork id")
    block_number: int = Field(..., description="Forked block number")
    tx_index: int = Field(..., description="Forked transaction index")
    accounts: List[ForkAccount] = Field(default_factory=list)
    rpc_url: str = Field(..., description="RPC endpoint of the fork")
    head_id: Optional[str] = Field(
        None,
        description="Latest state-mutating operation, None until the fork is used"
    )


# =============================================================================
# Simulations
# =============================================================================


class SimulationFork(CallerParams):
    """Fork to run a simulation on"""
    id: str
    root: Optional[str] = Field(
        None,
        description="Earlier simulation id whose resulting state is built upon"
    )


class SimulationParams(CallerParams):
    """Simulation parameters"""
    model_config = ConfigDict(populate_by_name=True)

    chain_id: StrictInt = Field(..., description="Network id")
    to: Optional[str] = Field(None, description="Target address")
    input: Optional[str] = Field(None, description="Calldata")
    value: Optional[str] = Field(None, description="Value in wei, decimal or 0x hex")
    from_address: Optional[str] = Field(
        None,
        alias="from",
        description="Sender, zero address when unset"
    )
    timestamp_override: Optional[StrictInt] = Field(None, description="Block timestamp override")
    fork: Optional[SimulationFork] = None
    description: Optional[str] = None


class ResultUrl(BaseModel):
    """Dashboard link to a simulation"""
    url: str
    public: bool = Field(..., description="False when the project is not publicly browsable")


class SimulationResult(BaseModel):
    """Simulation outcome"""
    id: str
    status: bool = Field(..., description="True if the transaction did not revert")
    gas_used: int
    result_url: ResultUrl


# =============================================================================
# Tenderly Wire Format
# =============================================================================


class SimulationForkPayload(BaseModel):
    """`simulation_fork` object of fork API responses"""
    model_config = ConfigDict(extra="allow")

    id: StrictStr
    block_number: StrictInt
    transaction_index: StrictInt
    accounts: Dict[StrictStr, StrictStr]
    rpc_url: StrictStr
    global_head: Optional[StrictStr] = None

    @property
    def description(self) -> Optional[object]:
        """Listed forks may carry a description of any type, or none"""
        return (self.model_extra or {}).get("description")


class RootTransaction(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: StrictStr


class ForkResponse(BaseModel):
    """Fork API response"""
    model_config = ConfigDict(extra="allow")

    simulation_fork: SimulationForkPayload
    root_transaction: Optional[RootTransaction] = None


class ForkListResponse(BaseModel):
    """Fork listing API response"""
    model_config = ConfigDict(extra="allow")

    simulation_forks: List[SimulationForkPayload]


class SimulationReceipt(BaseModel):
    model_config = ConfigDict(extra="allow")

    gas_used: StrictStr = Field(..., alias="gasUsed")


class SimulationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: StrictStr
    status: StrictBool
    receipt: SimulationReceipt


class SimulationResponse(BaseModel):
    """Simulation API response"""
    model_config = ConfigDict(extra="allow")

    simulation: SimulationPayload
