"""Tests for the typer command line."""
from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from cli import app
from conftest import pine_stand
from core.auth import decode_access_token

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI callback points root logging at the runner's stream; put it back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_inventory_totals_json(tmp_path, sample_cruise):
    cruise_file = tmp_path / "cruise.json"
    cruise_file.write_text(json.dumps(sample_cruise), encoding="utf-8")

    result = runner.invoke(app, ["inventory", "totals", str(cruise_file), "--json"])

    assert result.exit_code == 0
    totals = json.loads(result.stdout)
    assert totals["grandTotal"] == 370.0


def test_inventory_totals_accepts_bare_stand_list(tmp_path):
    cruise_file = tmp_path / "stands.json"
    cruise_file.write_text(json.dumps([pine_stand("Entire Tract", net_acres=0)]), encoding="utf-8")

    result = runner.invoke(app, ["inventory", "totals", str(cruise_file), "--acreage", "40", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["stands"][0]["netAcres"] == 40.0


def test_unreadable_file(tmp_path):
    result = runner.invoke(app, ["inventory", "totals", str(tmp_path / "missing.json")])

    assert result.exit_code == 1


def test_token_round_trip():
    result = runner.invoke(app, ["token", "f-1", "forester"])

    assert result.exit_code == 0
    token = result.stdout.strip().splitlines()[-1]
    assert decode_access_token(token)["role"] == "forester"


def test_token_rejects_unknown_role():
    result = runner.invoke(app, ["token", "f-1", "ranger"])

    assert result.exit_code == 1
