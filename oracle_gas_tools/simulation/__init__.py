"""
Simulation - Tenderly fork and transaction simulation client

Manages Tenderly forks and runs transactions on them through the Tenderly REST
API.
"""

from .models import (
    Fork,
    ForkAccount,
    ForkParams,
    ResultUrl,
    SimulationFork,
    SimulationParams,
    SimulationResult,
    ZERO_ADDRESS,
)
from .client import TenderlyClient
from .fork_manager import ForkManager
from .parsing import select_head_id
from .runner import SimulationRunner

__all__ = [
    # Models
    "Fork",
    "ForkAccount",
    "ForkParams",
    "ResultUrl",
    "SimulationFork",
    "SimulationParams",
    "SimulationResult",
    "ZERO_ADDRESS",
    # Tenderly
    "TenderlyClient",
    "ForkManager",
    "SimulationRunner",
    "select_head_id",
]
