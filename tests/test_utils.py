"""Tests for numeric parsing, rounding, dates, product keys and atomic output."""

import json
import os

import pytest

from vision.utils import (
    MissingInputError,
    as_number,
    normalize_date,
    parse_number,
    pct4,
    product_id_from_insertion_order,
    require_file,
    round4,
    round_half_up,
    write_json_atomic,
    write_lines_atomic,
)


class TestParseNumber:

    @pytest.mark.parametrize("raw,expected", [
        ("1,234", 1234.0),
        (" 12.5 ", 12.5),
        ("", 0.0),
        ("  ", 0.0),
        (7, 7.0),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        (None, None),
    ])
    def test_values(self, raw, expected):
        assert parse_number(raw) == expected


class TestRounding:

    def test_round4(self):
        assert round4(33.333333) == 33.3333
        assert round4(float("nan")) == 0.0

    def test_pct4_zero_denominator(self):
        assert pct4(5, 0) == 0.0
        assert pct4(1, 3) == 33.3333

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (2.4999, 2), (0.5, 1), (-2.5, -2), (10.0, 10)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_as_number(self):
        assert as_number(1200.0) == 1200
        assert isinstance(as_number(1200.0), int)
        assert as_number(12.5) == 12.5


class TestNormalizeDate:

    @pytest.mark.parametrize("raw,expected", [
        ("2024-01-05", "2024-01-05"),
        ("2024/1/5", "2024-01-05"),
        ("01-05-2024", "2024-01-05"),
        ("1/5/2024", "2024-01-05"),
        (" 2024-01-05 ", "2024-01-05"),
        ("Jan 5, 2024", "Jan 5, 2024"),
        ("", ""),
        (None, ""),
    ])
    def test_forms(self, raw, expected):
        assert normalize_date(raw) == expected


class TestProductId:

    def test_prefix_before_first_underscore(self):
        assert product_id_from_insertion_order("1001_Campaign_1_Display") == "1001"
        assert product_id_from_insertion_order("NoUnderscore") == "NoUnderscore"
        assert product_id_from_insertion_order(None) == ""


class TestFiles:

    def test_require_file_fallback(self, tmp_path):
        second = tmp_path / "gender.csv"
        second.write_text("x", encoding="utf-8")
        assert require_file(str(tmp_path / "genders.csv"), str(second)) == str(second)

    def test_require_file_missing(self, tmp_path):
        with pytest.raises(MissingInputError, match="genders.csv"):
            require_file(str(tmp_path / "genders.csv"), str(tmp_path / "gender.csv"))
        assert issubclass(MissingInputError, FileNotFoundError)

    def test_write_lines_atomic(self, tmp_path):
        path = str(tmp_path / "out" / "a.jsonl")
        assert write_lines_atomic(path, [{"name": "Café", "n": 1}, {"n": 2}]) == 2
        with open(path, encoding="utf-8") as handle:
            assert handle.read() == '{"name":"Café","n":1}\n{"n":2}\n'
        assert os.listdir(tmp_path / "out") == ["a.jsonl"]

    def test_failed_write_leaves_no_file(self, tmp_path):
        path = str(tmp_path / "a.jsonl")

        def records():
            yield {"n": 1}
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            write_lines_atomic(path, records())
        assert os.listdir(tmp_path) == []

    def test_unserializable_json_leaves_previous_file(self, tmp_path):
        path = str(tmp_path / "doc.json")
        write_json_atomic(path, {"a": 1})
        with pytest.raises(TypeError):
            write_json_atomic(path, {"a": object()})
        with open(path, encoding="utf-8") as handle:
            assert json.load(handle) == {"a": 1}
        assert os.listdir(tmp_path) == ["doc.json"]
