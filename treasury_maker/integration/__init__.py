"""
In-process collaborators of the treasury maker
"""

from .runtime import CallContext, Event, LedgerRuntime
from .token_ledger import TokenLedger, WrappedNative
from .venues import AmmVenue
from .basket_pool import BasketPool
from .keeper_registry import CompensationPlan, CompensationSink, KeeperRegistry, RoleOracle
from .config_loader import (
    TreasuryDeployment,
    apply_deployment,
    deployment_from_mapping,
    load_deployment,
    treasury_config_from_mapping,
)

__all__ = [
    "CallContext",
    "Event",
    "LedgerRuntime",
    "TokenLedger",
    "WrappedNative",
    "AmmVenue",
    "BasketPool",
    "CompensationPlan",
    "CompensationSink",
    "KeeperRegistry",
    "RoleOracle",
    "TreasuryDeployment",
    "apply_deployment",
    "deployment_from_mapping",
    "load_deployment",
    "treasury_config_from_mapping",
]
