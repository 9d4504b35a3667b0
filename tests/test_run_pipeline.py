"""End-to-end tests for the CLI and the sample data generator."""

import json
import os

import pytest

from vision.run_pipeline import build_parser, config_from_args, main


def _dirs(tmp_path):
    return [
        "--raw-dir", str(tmp_path / "rawData"),
        "--intermediate-dir", str(tmp_path / "intermediate"),
        "--processed-dir", str(tmp_path / "processed"),
        "--dictionary-dir", str(tmp_path / "dictionary"),
    ]


class TestParser:

    def test_flags_reach_config(self):
        args = build_parser().parse_args(["all", "--provider", "ttd", "--tiers", "2", "--minscore", "0.7",
                                          "--splitval", ">", "--device-min-pct", "5"])
        config = config_from_args(args).validate()
        assert (config.provider, config.tiers, config.min_score, config.splitval, config.device_min_pct) == (
            "ttd", 2, 0.7, ">", 5.0)

    def test_step_specific_flags(self):
        args = build_parser().parse_args(["infer-age-gender"])
        config = config_from_args(args)
        assert config.tiers == 1
        with pytest.raises(SystemExit):
            build_parser().parse_args(["infer-age-gender", "--tiers", "2"])

    def test_tiers_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["extract-categories", "--tiers", "5"])


class TestMain:

    def test_invalid_option_exits_before_reading(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["infer-iab", "--minscore", "2"] + _dirs(tmp_path))
        assert exc.value.code == 2
        assert not (tmp_path / "intermediate").exists()

    def test_bad_splitval(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["extract-categories", "--splitval", "ab"] + _dirs(tmp_path))
        assert exc.value.code == 2

    def test_column_overrides_reach_the_scan(self, tmp_path):
        raw = tmp_path / "rawData"
        raw.mkdir()
        (raw / "device.csv").write_text("P1_a,2024-01-01,100,0,Tablet\nP1_a,2024-01-02,100,0,Desktop\n", encoding="utf-8")
        overrides = '{"device": {"impressions": 2, "deviceType": 4}}'
        assert main(["generate-vision", "--column-overrides", overrides] + _dirs(tmp_path)) == 0
        with open(tmp_path / "processed" / "P1.vision.json", encoding="utf-8") as handle:
            node = json.load(handle)["data"]["products"]["P1"]
        assert node["byDevices"] == {"Mobile": 50.0, "Desktop": 50.0}

    def test_bad_column_overrides(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["generate-vision", "--column-overrides", "{not json"] + _dirs(tmp_path))
        assert exc.value.code == 2

    def test_missing_input_returns_1(self, tmp_path):
        assert main(["extract-categories"] + _dirs(tmp_path)) == 1

    def test_all_stops_at_first_failure(self, tmp_path):
        raw = tmp_path / "rawData"
        raw.mkdir()
        (raw / "categories.csv").write_text(
            "Insertion Order,Date,Category,App/URL,Impressions,Clicks,Viewable Impressions\n"
            "P1_a,2024-01-01,/Sports,espn.com,10,1,5\n",
            encoding="utf-8",
        )
        assert main(["all"] + _dirs(tmp_path)) == 1
        assert (tmp_path / "intermediate" / "categories.tier1.jsonl").exists()
        assert not (tmp_path / "processed").exists()


class TestSampleDataEndToEnd:

    def test_generated_data_runs_through_every_step(self, tmp_path, sample_data_module):
        info = sample_data_module.generate_sample_data(output_dir=str(tmp_path), num_products=2, num_days=3)
        assert main(["all", "--tiers", "2", "--device-min-pct", "5"] + _dirs(tmp_path)) == 0

        intermediate = tmp_path / "intermediate"
        assert sorted(os.listdir(intermediate)) == [
            "categories.tier2.jsonl", "categoryscored.jsonl", "gender.deaggregated.jsonl",
        ]

        for pid in info["product_ids"]:
            with open(tmp_path / "processed" / f"{pid}.vision.json", encoding="utf-8") as handle:
                node = json.load(handle)["data"]["products"][pid]

            assert len(node["perDay"]) == 3
            assert sum(node["byDevices"].values()) == pytest.approx(100.0, abs=1e-3)
            assert all(value >= 5 for value in node["byDevices"].values())
            assert node["demo"]["gender_male"] + node["demo"]["gender_female"] == pytest.approx(100.0, abs=1e-3)
            assert node["contentTaxonomy"]["audience_distribution"]
            assert node["keyProperties"]

    def test_generator_is_deterministic(self, tmp_path, sample_data_module):
        sample_data_module.generate_sample_data(output_dir=str(tmp_path / "a"), num_products=1, num_days=2)
        sample_data_module.generate_sample_data(output_dir=str(tmp_path / "b"), num_products=1, num_days=2)
        for name in ("categories.csv", "genders.csv", "device.csv", "unique.csv"):
            first = (tmp_path / "a" / "rawData" / name).read_bytes()
            assert first == (tmp_path / "b" / "rawData" / name).read_bytes()
            assert b"Report Time" in first
