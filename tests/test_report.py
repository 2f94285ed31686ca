"""Tests for the printable cruise report."""
from __future__ import annotations

import pytest

from core.types import CruiseData, DBHRow, ProductEntry, Stand
from domain.report import (
    bid_method_label,
    build_sale_report,
    is_sawtimber,
    summarize_inventory,
    tons_to_mbf,
)


def stand(name, acres, *products):
    return Stand(
        name=name,
        net_acres=acres,
        products=[
            ProductEntry(product=p, breakdown=[DBHRow(dbh='14"', trees=t, volume=v, units=u)])
            for p, t, v, u in products
        ],
    )


class TestConversion:
    def test_pine_sawtimber_uses_eight_tons_per_mbf(self):
        assert tons_to_mbf("Pine Sawtimber", 160.0) == pytest.approx(20.0)

    def test_hardwood_sawtimber_uses_nine_tons_per_mbf(self):
        assert tons_to_mbf("Red Oak Sawtimber", 90.0) == pytest.approx(10.0)

    def test_sawtimber_match_is_case_insensitive(self):
        assert is_sawtimber("pine SAWTIMBER")
        assert not is_sawtimber("Pine Chip-n-Saw")
        assert not is_sawtimber("Hardwood Pulpwood")


class TestSummary:
    def test_tables_split_on_sawtimber_name(self):
        summary = summarize_inventory([
            stand(
                "A", 20.0,
                ("Pine Sawtimber", 80, 160.0, "Tons"),
                ("Pine Chip-n-Saw", 40, 50.0, "Tons"),
            ),
            stand(
                "B", 10.0,
                ("Red Oak Sawtimber", 30, 90.0, "Tons"),
                ("Pine Pulpwood", 200, 120.0, "Tons"),
            ),
        ])

        assert [r.product for r in summary.sawtimber.rows] == ["Pine Sawtimber", "Red Oak Sawtimber"]
        assert [r.product for r in summary.pulpwood.rows] == ["Pine Chip-n-Saw", "Pine Pulpwood"]

        saw = summary.sawtimber.to_dict()
        assert saw["rows"][0]["mbf"] == 20.0
        assert saw["rows"][1]["mbf"] == 10.0
        assert saw["total"] == {"trees": 110, "tons": 250.0, "mbf": 30.0}

        pulp = summary.pulpwood.to_dict()
        assert pulp["rows"][0]["mbf"] is None
        assert pulp["total"] == {"trees": 240, "tons": 170.0}

    def test_same_product_across_stands_is_combined(self):
        summary = summarize_inventory([
            stand("A", 10.0, ("Pine Sawtimber", 10, 80.0, "Tons")),
            stand("B", 10.0, ("Pine Sawtimber", 10, 80.0, "Tons")),
        ])

        (row,) = summary.sawtimber.rows
        assert row.trees == 20
        assert row.tons == 160.0
        assert row.mbf == pytest.approx(20.0)

    def test_grand_totals_cover_both_tables(self):
        summary = summarize_inventory([
            stand(
                "A", 10.0,
                ("Pine Sawtimber", 10, 80.0, "Tons"),
                ("Pine Pulpwood", 50, 40.0, "Tons"),
            ),
        ])

        assert summary.grand_total_trees == 60
        assert summary.grand_total_tons == 120.0
        assert summary.grand_total_mbf == pytest.approx(10.0)

    def test_mbf_rows_do_not_add_tonnage(self):
        summary = summarize_inventory([stand("A", 10.0, ("Pine Sawtimber", 10, 5.0, "MBF"))])

        (row,) = summary.sawtimber.rows
        assert row.trees == 10
        assert row.tons == 0.0
        assert row.mbf == 0.0

    def test_overview_is_alphabetical(self):
        summary = summarize_inventory([
            stand(
                "A", 10.0,
                ("Pine Sawtimber", 1, 8.0, "Tons"),
                ("Hardwood Pulpwood", 1, 1.0, "Tons"),
                ("Gum Sawtimber", 1, 9.0, "Tons"),
            ),
        ])

        assert [r.product for r in summary.overview] == [
            "Gum Sawtimber",
            "Hardwood Pulpwood",
            "Pine Sawtimber",
        ]

    def test_empty_inventory_yields_zero_totals(self):
        summary = summarize_inventory([])
        rendered = summary.to_dict()

        assert rendered["stands"] == []
        assert rendered["sawtimber"]["rows"] == []
        assert rendered["pulpwood"]["rows"] == []
        assert rendered["grandTotal"] == {"trees": 0, "tons": 0.0, "mbf": 0.0}

    def test_stand_detail_per_acre(self):
        summary = summarize_inventory([stand("A", 20.0, ("Pine Sawtimber", 80, 160.0, "Tons"))])
        detail = summary.to_dict()["stands"][0]

        assert detail["treesPerAcre"] == 4.0
        assert detail["tonsPerAcre"] == 8.0
        assert detail["products"][0]["tonsPerAcre"] == 8.0


class TestSaleReport:
    def test_header_and_tables(self, sample_cruise):
        report = build_sale_report(
            CruiseData.from_dict(sample_cruise),
            owner_name="Pat Owner",
            forester_name="Sam Forester",
        )

        header = report["header"]
        assert header["saleName"] == "North Tract Sale"
        assert header["location"] == "Washington, LA"
        assert header["bidMethod"] == "Lump Sum Sealed Bid"
        assert header["ownerName"] == "Pat Owner"
        assert header["foresterName"] == "Sam Forester"
        assert report["sawtimber"]["total"]["mbf"] == 30.0
        assert report["grandTotal"]["tons"] == 370.0

    def test_bid_method_label(self):
        assert bid_method_label("lump-sum") == "Lump Sum Sealed Bid"
        assert bid_method_label("pay-as-cut") == "Pay-as-Cut (Per Unit)"
        assert bid_method_label("") == "Pay-as-Cut (Per Unit)"

    def test_report_does_not_change_stored_tonnage(self, sample_cruise):
        cruise = CruiseData.from_dict(sample_cruise)
        before = cruise.to_dict()

        build_sale_report(cruise)

        assert cruise.to_dict() == before
