"""Exception types for the treasury maker.

Every error carries a stable, machine-checkable ``code``. The exception
message always starts with that code so callers (and keepers parsing revert
reasons) can match on either.

Collaborator failures (token ledger, venues, basket pool) are raised with the
collaborator's own reason string and are never reinterpreted by the core.
"""

from __future__ import annotations

from typing import Optional


class TreasuryError(Exception):
    """Base class for all treasury maker errors."""

    code: str = "TREASURY_ERROR"

    def __init__(self, detail: Optional[str] = None, *, code: Optional[str] = None) -> None:
        if code is not None:
            self.code = code
        self.detail = detail
        msg = self.code if not detail else f"{self.code}: {detail}"
        super().__init__(msg)


# -- configuration -----------------------------------------------------------


class ConfigurationError(TreasuryError):
    code = "INVALID_CONFIGURATION"


class ZeroTargetAmount(ConfigurationError):
    code = "TARGET_AMOUNT_OUT_0"


class RouteEndpointMismatch(ConfigurationError):
    code = "ROUTE_ENDPOINT_MISMATCH"


class InvalidRoutePath(ConfigurationError):
    code = "INVALID_ROUTE_PATH"


class UnknownBasketStrategy(ConfigurationError):
    code = "UNKNOWN_BASKET_STRATEGY"


class NotAuthorized(ConfigurationError):
    code = "NOT_OWNER"


class InvalidConfig(ConfigurationError):
    code = "INVALID_CONFIG"


# -- authorization -----------------------------------------------------------


class AuthorizationError(TreasuryError):
    code = "NOT_AUTHORIZED"


class NotExternallyOwned(AuthorizationError):
    code = "NOT_EOA"


class InvalidPokerKey(AuthorizationError):
    code = "INVALID_POKER_KEY"


class SlasherIsReporter(AuthorizationError):
    code = "IS_HDH"


class ReentrantPoke(AuthorizationError):
    code = "REENTRANT_POKE"


# -- liquidity / balances ----------------------------------------------------


class LiquidityError(TreasuryError):
    code = "LIQUIDITY_ERROR"


class InsufficientBalance(LiquidityError):
    code = "INSUFFICIENT_BALANCE"


class NativeBalanceZero(LiquidityError):
    code = "NATIVE_BALANCE_IS_0"


class TransferFailed(LiquidityError):
    """Raised by the token ledger; ``code`` is the ledger's own reason."""

    code = "TRANSFER_FAILED"


class VenueError(LiquidityError):
    """Raised by an AMM venue; ``code`` is the venue's own reason."""

    code = "VENUE_ERROR"


class BasketError(LiquidityError):
    """Raised by a basket pool; ``code`` is the pool's own reason."""

    code = "BASKET_ERROR"


# -- state -------------------------------------------------------------------


class StateError(TreasuryError):
    code = "STATE_ERROR"


class RotationNotSynced(StateError):
    code = "ROTATION_NOT_SYNCED"


class EmptyRotation(StateError):
    code = "ROTATION_EMPTY"


class StaleRotationMember(StateError):
    code = "ROTATION_MEMBER_UNBOUND"


class ConversionInvariantViolation(StateError):
    code = "TARGET_DELTA_MISMATCH"


# -- compensation ------------------------------------------------------------


class CompensationError(TreasuryError):
    """Raised by the keeper registry when a reward cannot be settled."""

    code = "COMPENSATION_FAILED"
