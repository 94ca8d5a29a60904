#!/usr/bin/env python3
"""
Offline treasury conversion demo.

Builds an in-process ledger from a YAML scenario (a `treasury-maker/config/v1`
document with an extra `scenario` section), applies the deployment's routes and
basket strategies, and runs the listed conversions:

    scenario:
      provider: "0x..."          # seeds pairs and the maker's holdings
      maker: "0x..."
      native_supply: "1e10 ether"
      wrap: "1e9 ether"          # native wrapped into the base token
      mint: {"0x...": "1e15 ether"}
      pairs:
        - {token_a: "0x...", token_b: "0x...", amount_a: ..., amount_b: ..., venue: "0x..."}
      holdings: {"0x...": "8000 ether", native: "4 ether"}
      convert: ["0x...", native]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from treasury_maker.core.executor import SwapRecord
from treasury_maker.core.maker import TreasuryMaker
from treasury_maker.errors import InvalidConfig, TreasuryError
from treasury_maker.integration.config_loader import (
    apply_deployment,
    deployment_from_mapping,
    parse_amount,
    require_list,
    require_mapping,
    require_str,
)
from treasury_maker.integration.runtime import LedgerRuntime
from treasury_maker.integration.token_ledger import WrappedNative
from treasury_maker.integration.venues import AmmVenue
from treasury_maker.state.balances import NATIVE_ASSET

DEFAULT_SCENARIO = ROOT / "tools" / "treasury_demo.yaml"

logger = logging.getLogger("treasury_demo")


def _token(name: str) -> str:
    return NATIVE_ASSET if name == "native" else name


def build_scenario(raw: object) -> Tuple[LedgerRuntime, TreasuryMaker, List[str]]:
    deployment = deployment_from_mapping(raw)
    config = deployment.config
    scenario = require_mapping(require_mapping(raw, name="config").get("scenario"), name="scenario")
    provider = require_str(scenario.get("provider"), name="scenario.provider")
    maker_address = require_str(scenario.get("maker"), name="scenario.maker")

    runtime = LedgerRuntime()
    runtime.mint_native(provider, parse_amount(scenario.get("native_supply", 0), name="scenario.native_supply"))
    weth = WrappedNative(runtime, config.base_token)
    weth.deposit(provider, parse_amount(scenario.get("wrap", 0), name="scenario.wrap"))
    for token, amount in require_mapping(scenario.get("mint", {}), name="scenario.mint").items():
        runtime.tokens.mint(provider, require_str(token, name="scenario.mint key"), parse_amount(amount, name=f"scenario.mint[{token}]"))

    venues = {config.canonical_venue: AmmVenue(runtime, config.canonical_venue)}
    for i, entry in enumerate(require_list(scenario.get("pairs", []), name="scenario.pairs")):
        pair = require_mapping(entry, name=f"scenario.pairs[{i}]")
        address = require_str(pair.get("venue", config.canonical_venue), name=f"scenario.pairs[{i}].venue")
        if address not in venues:
            venues[address] = AmmVenue(runtime, address)
        venues[address].create_pair(
            provider,
            require_str(pair.get("token_a"), name=f"scenario.pairs[{i}].token_a"),
            require_str(pair.get("token_b"), name=f"scenario.pairs[{i}].token_b"),
            parse_amount(pair.get("amount_a"), name=f"scenario.pairs[{i}].amount_a"),
            parse_amount(pair.get("amount_b"), name=f"scenario.pairs[{i}].amount_b"),
        )

    maker = TreasuryMaker(runtime, maker_address, config)
    apply_deployment(maker, runtime.call(config.owner), deployment)

    for name, amount in require_mapping(scenario.get("holdings", {}), name="scenario.holdings").items():
        value = parse_amount(amount, name=f"scenario.holdings[{name}]")
        token = _token(require_str(name, name="scenario.holdings key"))
        if token == NATIVE_ASSET:
            maker.receive_native(runtime.call(provider), value)
        else:
            runtime.tokens.transfer(provider, maker_address, token, value)

    convert = [
        _token(require_str(t, name=f"scenario.convert[{i}]"))
        for i, t in enumerate(require_list(scenario.get("convert", []), name="scenario.convert"))
    ]
    return runtime, maker, convert


def run_scenario(path: Path) -> Tuple[TreasuryMaker, List[SwapRecord]]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidConfig(detail=f"{path}: {exc}") from exc
    runtime, maker, convert = build_scenario(raw)
    caller = runtime.call(maker.owner)
    records = []
    for token in convert:
        print(f"[treasury-demo] {token}: estimate_in={maker.estimate_amount_in(token)} estimate_out={maker.estimate_amount_out(token)}")
        records.append(maker.swap(caller, token))
    return maker, records


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    p.add_argument("--scenario", default=str(DEFAULT_SCENARIO), help="YAML scenario file")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = p.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    try:
        maker, records = run_scenario(Path(args.scenario))
    except TreasuryError as exc:
        print(f"[treasury-demo] FAIL: {exc}")
        return 1

    for record in records:
        print(
            f"[treasury-demo] {record.strategy_kind}: {record.amount_in} of {record.token} -> "
            f"{record.amount_out} target (beneficiary {record.target_balance_before} -> {record.target_balance_after})"
        )
    print(f"[treasury-demo] OK: {len(records)} conversion(s), target amount {maker.target_amount_out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
