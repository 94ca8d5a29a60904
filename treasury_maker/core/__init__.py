"""
Treasury maker core
"""

from .config import TreasuryConfig, TreasurySettings
from .paths import BasketStrategy, PathRegistry, RouteOverride
from .strategy import (
    BaseAsset,
    BasketDirectExit,
    BasketRotatingExit,
    Direct,
    GenericRoute,
    Strategy,
    resolve_strategy,
)
from .rotation import BasketRotationBook, RotationState
from .estimation import EstimationEngine, RotatingExitQuote
from .executor import SwapExecutor, SwapRecord
from .poke_gate import GateState, PokeGate, PokeRewardOptions
from .maker import TreasuryMaker

__all__ = [
    "TreasuryConfig",
    "TreasurySettings",
    "BasketStrategy",
    "PathRegistry",
    "RouteOverride",
    "BaseAsset",
    "BasketDirectExit",
    "BasketRotatingExit",
    "Direct",
    "GenericRoute",
    "Strategy",
    "resolve_strategy",
    "BasketRotationBook",
    "RotationState",
    "EstimationEngine",
    "RotatingExitQuote",
    "SwapExecutor",
    "SwapRecord",
    "GateState",
    "PokeGate",
    "PokeRewardOptions",
    "TreasuryMaker",
]
