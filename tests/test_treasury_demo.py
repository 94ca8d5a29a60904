from __future__ import annotations

from conftest import BENEFICIARY, CVP, ether


def test_demo_scenario_runs_every_conversion(capsys) -> None:
    from tools.treasury_demo import DEFAULT_SCENARIO, main, run_scenario

    maker, records = run_scenario(DEFAULT_SCENARIO)
    assert [r.strategy_kind for r in records] == ["generic_route", "generic_route", "generic_route", "base_asset"]
    assert all(r.amount_out == ether(2000) for r in records)
    assert maker.runtime.tokens.balance_of(BENEFICIARY, CVP) == ether(8000)

    assert main(["--scenario", str(DEFAULT_SCENARIO)]) == 0
    assert "OK: 4 conversion(s)" in capsys.readouterr().out


def test_demo_reports_bad_scenario(tmp_path, capsys) -> None:
    from tools.treasury_demo import main

    bad = tmp_path / "bad.yaml"
    bad.write_text("schema: nope\n", encoding="utf-8")
    assert main(["--scenario", str(bad)]) == 1
    assert "FAIL" in capsys.readouterr().out
