"""Tests for dictionary loading and IAB scoring."""

import pytest

from vision.csv_reader import ScanStats
from vision.iab import ScoreAccumulator, load_dictionary, run_infer_iab, score_categories, scored_records
from vision.utils import MissingInputError


HEADER = "Insertion Order,Date,Category,App/URL,Impressions,Clicks,Viewable Impressions"

SPORTS = {"tier1": "Sports", "iab": [
    {"id": "483", "name": "Sports", "score": 0.5},
    {"id": "484", "name": "American Football", "score": 0.3},
]}


@pytest.fixture
def dictionary_file(config, write_jsonl):
    return write_jsonl(config.dictionary_dir, config.dictionary_file, [
        SPORTS,
        {"tier1": "News", "iab": [{"id": 379, "name": "News and Politics", "score": 0.9}]},
        "not json",
        ["also", "not", "a", "dict"],
    ])


class TestLoadDictionary:

    def test_keys_are_lowercased_and_bad_lines_ignored(self, dictionary_file):
        dictionary = load_dictionary(dictionary_file)
        assert set(dictionary) == {"sports", "news"}
        assert dictionary["sports"] == SPORTS["iab"]


class TestScoreAccumulator:

    def test_score_sums_and_last_name_wins(self):
        acc = ScoreAccumulator()
        acc.add(("P1", "483"), "Sports", 10.0)
        acc.add(("P1", "483"), "Sport", 5.0)
        assert dict(acc.items()) == {("P1", "483"): {"name": "Sport", "score": 15.0}}


class TestScoreCategories:

    def test_min_score_filters_candidates(self, config, write_raw, dictionary_file):
        path = write_raw("categories.csv", [HEADER, "P1_a,2024-01-01,/sports/Soccer,espn.com,100,1,50"])
        acc = score_categories(path, load_dictionary(dictionary_file), config, ScanStats())
        assert scored_records(acc) == [{
            "insertionOrder": "P1_a",
            "date": "2024-01-01",
            "iabId": "483",
            "iabcategoryName": "Sports",
            "iabscore": 50.0,
        }]

    def test_aggregates_per_io_date_and_id(self, config, write_raw, dictionary_file):
        path = write_raw("categories.csv", [
            HEADER,
            "P1_a,2024-01-01,/Sports/Soccer,espn.com,100,1,50",
            "P1_a,2024-01-01,/Sports/Tennis,espn.com,20,1,50",
            "P1_a,2024-01-02,/Sports/Tennis,espn.com,40,1,50",
        ])
        records = scored_records(score_categories(path, load_dictionary(dictionary_file), config, ScanStats()))
        assert {(r["date"], r["iabscore"]) for r in records} == {("2024-01-01", 60.0), ("2024-01-02", 20.0)}

    def test_skip_reasons(self, config, write_raw, dictionary_file):
        config.min_score = 0.95
        path = write_raw("categories.csv", [
            HEADER,
            "P1_a,2024-01-01,/Travel/Hotels,trip.com,100,1,50",
            "P1_a,2024-01-01,/Sports/Soccer,espn.com,many,1,50",
            "P1_a,2024-01-01,/Sports/Soccer,espn.com,100,1,50",
            "P1_a,2024-01-01,/,espn.com,100,1,50",
            "P1_a,2024-01-01",
        ])
        stats = ScanStats()
        acc = score_categories(path, load_dictionary(dictionary_file), config, stats)
        assert len(acc) == 0
        assert stats.accepted == 0
        assert stats.skipped == {
            "no_dictionary_entry": 1,
            "bad_impressions": 1,
            "below_min_score": 1,
            "empty_category": 1,
            "missing_field": 1,
        }


class TestRunInferIab:

    def test_writes_scored_jsonl(self, config, write_raw, dictionary_file, read_jsonl):
        write_raw("categories.csv", [
            HEADER,
            "P1_a,2024-01-01,/News/Politics,cnn.com,10,1,5",
            "Report Time,2024-01-31",
            "P1_a,2024-01-01,/News/Politics,cnn.com,1000,1,5",
        ])
        out = run_infer_iab(config)
        assert out.endswith("categoryscored.jsonl")
        assert read_jsonl(out) == [{
            "insertionOrder": "P1_a",
            "date": "2024-01-01",
            "iabId": "379",
            "iabcategoryName": "News and Politics",
            "iabscore": 9.0,
        }]

    def test_missing_dictionary(self, config, write_raw):
        write_raw("categories.csv", [HEADER])
        with pytest.raises(MissingInputError):
            run_infer_iab(config)

    def test_missing_categories(self, config, dictionary_file):
        with pytest.raises(MissingInputError):
            run_infer_iab(config)
