from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import pytest

from treasury_maker.core.config import TreasuryConfig
from treasury_maker.core.maker import TreasuryMaker
from treasury_maker.integration.basket_pool import BasketPool
from treasury_maker.integration.keeper_registry import CompensationPlan, KeeperRegistry
from treasury_maker.integration.runtime import LedgerRuntime
from treasury_maker.integration.token_ledger import WrappedNative
from treasury_maker.integration.venues import AmmVenue

ETHER = 10**18
GWEI = 10**9


def ether(value) -> int:
    """`ether("0.5")` -> 5 * 10**17; strings avoid float rounding."""
    if isinstance(value, str):
        whole, _, frac = value.partition(".")
        frac = (frac + "0" * 18)[:18]
        return int(whole or "0") * ETHER + int(frac or "0")
    return int(value) * ETHER


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


DEPLOYER = addr(0xD0)
OWNER = addr(0x0E)
ALICE = addr(0xA1)
BOB = addr(0xB0)
REPORTER = addr(0x1E)
SLASHER = addr(0x5A)
BENEFICIARY = addr(0xBE)
FEE_RECEIVER = addr(0xFE)

MAKER = addr(0x1000)
CANONICAL_VENUE = addr(0x2000)
ALT_VENUE = addr(0x2001)
REGISTRY = addr(0x3000)

WETH = addr(0x4000)
CVP = addr(0x4001)
DAI = addr(0x4002)
UNI = addr(0x4003)
USDC = addr(0x4004)
SUSHI = addr(0x4005)
COMP = addr(0x4006)
AAVE = addr(0x4007)
SNX = addr(0x4008)


@dataclass
class World:
    runtime: LedgerRuntime
    weth: WrappedNative
    venue: AmmVenue
    alt_venue: AmmVenue
    registry: KeeperRegistry
    maker: TreasuryMaker
    users: Dict[str, int]

    def balance(self, holder: str, token: str) -> int:
        return self.runtime.tokens.balance_of(holder, token)

    def fund_maker(self, token: str, amount: int) -> None:
        self.runtime.tokens.transfer(DEPLOYER, MAKER, token, amount)

    def make_pair(self, token_a: str, token_b: str, amount_a: int, amount_b: int, *, venue: AmmVenue = None) -> None:
        (venue or self.venue).create_pair(DEPLOYER, token_a, token_b, amount_a, amount_b)

    def make_basket(self, address: str, bindings, *, community_exit_fee: int = 0) -> BasketPool:
        return BasketPool.create(
            self.runtime,
            address,
            controller=DEPLOYER,
            bindings=bindings,
            swap_fee=ether("0.01"),
            community_exit_fee=community_exit_fee,
            community_fee_receiver=FEE_RECEIVER,
        )


def build_world(*, allow_direct_swap: bool = True) -> World:
    runtime = LedgerRuntime(timestamp=1_600_000_000)
    runtime.mint_native(DEPLOYER, ether(10**10))
    weth = WrappedNative(runtime, WETH)
    weth.deposit(DEPLOYER, ether(10**9))
    for token in (CVP, DAI, UNI, USDC, SUSHI, COMP, AAVE, SNX):
        runtime.tokens.mint(DEPLOYER, token, ether(10**15))

    venue = AmmVenue(runtime, CANONICAL_VENUE)
    alt_venue = AmmVenue(runtime, ALT_VENUE)
    venue.create_pair(DEPLOYER, DAI, WETH, ether(2 * 10**9), ether(10**6))
    venue.create_pair(DEPLOYER, CVP, WETH, ether(60 * 10**7), ether(10**6))

    registry = KeeperRegistry(runtime, REGISTRY)
    config = TreasuryConfig(
        target_token=CVP,
        base_token=WETH,
        beneficiary=BENEFICIARY,
        canonical_venue=CANONICAL_VENUE,
        target_amount_out=ether(2000),
        owner=OWNER,
        keeper_registry=REGISTRY,
        allow_direct_swap=allow_direct_swap,
    )
    maker = TreasuryMaker(runtime, MAKER, config)

    registry.add_client(MAKER, OWNER, CompensationPlan(reward_token=CVP, max_gas_price=100 * GWEI), minimal_deposit=ether(1))
    registry.set_price(CVP, ETHER // 600)
    registry.add_credit(DEPLOYER, MAKER, ether(10_000))
    runtime.send_native(DEPLOYER, REGISTRY, ether(100))

    reporter_id = registry.create_user(REPORTER, REPORTER)
    slasher_id = registry.create_user(SLASHER, SLASHER)
    registry.set_deposit(REPORTER, MAKER, reporter_id, ether(3000))
    registry.set_deposit(SLASHER, MAKER, slasher_id, ether(1000))

    # The beneficiary starts with 725 of the target token.
    runtime.tokens.transfer(DEPLOYER, BENEFICIARY, CVP, ether(725))

    return World(
        runtime=runtime,
        weth=weth,
        venue=venue,
        alt_venue=alt_venue,
        registry=registry,
        maker=maker,
        users={"reporter": reporter_id, "slasher": slasher_id},
    )


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def keeper_world() -> World:
    return build_world(allow_direct_swap=False)
