"""Tests for delimrepair.column_stats."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from delimrepair.column_stats import ColumnStat, FileMetadata, InvalidMetadataError

CHARACTERS = (
    "name|force_alignment\n"
    "Luke Skywalker|Light\n"
    "Darth Vader|Dark\n"
    "Leia Organa|Light\n"
    "Yoda|Light\n"
)

VALID_COLUMN = {
    "maxLength": 6,
    "name": "col",
    "unbounded": False,
    "uniqueValues": ["value1", "value2"],
}


def _write_characters(tmp_path: Path) -> Path:
    path = tmp_path / "characters.txt"
    path.write_text(CHARACTERS, encoding="utf-8")
    return path


class TestColumnStatObserve:
    def test_tracks_max_length_and_values(self) -> None:
        col = ColumnStat("col")
        col.observe("value1", 2).observe("value2", 2).observe("value2", 2)
        assert col.max_length == 6
        assert col.unbounded is False
        assert col.unique_values == {"value1", "value2"}
        assert col.cardinality == 2

    def test_exceeding_max_cardinality_latches_unbounded(self) -> None:
        col = ColumnStat("col")
        for value in ("1", "2", "3", "4"):
            col.observe(value, 3)
        assert col.unbounded is True
        assert col.cardinality is None
        assert col.unique_values == set()

    def test_unbounded_is_one_way(self) -> None:
        col = ColumnStat("col")
        col.observe("a", 0)
        assert col.unbounded is True
        col.observe("a", 10).observe("b", 10)
        assert col.unbounded is True
        assert col.unique_values == set()

    def test_max_length_keeps_growing_after_unbounded(self) -> None:
        col = ColumnStat("col")
        col.observe("a", 0).observe("abcdef", 0)
        assert col.max_length == 6

    def test_repeated_value_does_not_count_twice(self) -> None:
        col = ColumnStat("col")
        col.observe("x", 1).observe("x", 1)
        assert col.unbounded is False
        assert col.cardinality == 1


class TestColumnStatSerialization:
    def test_to_dict(self) -> None:
        col = ColumnStat("col")
        col.observe("value2", 2).observe("value1", 2)
        assert col.to_dict() == {
            "cardinality": 2,
            "maxLength": 6,
            "name": "col",
            "unbounded": False,
            "uniqueValues": ["value1", "value2"],
        }

    def test_unbounded_cardinality_is_null(self) -> None:
        col = ColumnStat("free", max_length=3, unbounded=True)
        assert col.to_dict()["cardinality"] is None

    def test_from_dict(self) -> None:
        col = ColumnStat.from_dict(VALID_COLUMN)
        assert col.cardinality == 2
        assert col.max_length == 6
        assert col.name == "col"
        assert col.unbounded is False
        assert col.unique_values == {"value1", "value2"}

    def test_from_dict_ignores_stored_cardinality(self) -> None:
        col = ColumnStat.from_dict({**VALID_COLUMN, "cardinality": 99})
        assert col.cardinality == 2

    def test_round_trip(self) -> None:
        col = ColumnStat("side")
        for value in ("Dark", "Light", "Dark"):
            col.observe(value, 5)
        restored = ColumnStat.from_dict(col.to_dict())
        assert restored == col

    def test_round_trip_unbounded(self) -> None:
        col = ColumnStat("notes")
        for value in ("a", "bb", "ccc"):
            col.observe(value, 1)
        restored = ColumnStat.from_dict(json.loads(json.dumps(col.to_dict())))
        assert restored == col

    @pytest.mark.parametrize("field", ["maxLength", "name", "unbounded", "uniqueValues"])
    def test_missing_field(self, field: str) -> None:
        obj = dict(VALID_COLUMN)
        del obj[field]
        with pytest.raises(InvalidMetadataError, match=f"Missing.+{field}") as info:
            ColumnStat.from_dict(obj)
        assert info.value.field == field

    @pytest.mark.parametrize("field", ["maxLength", "name", "unbounded", "uniqueValues"])
    def test_invalid_type(self, field: str) -> None:
        obj: dict[str, object] = dict(VALID_COLUMN)
        obj[field] = [1, 2, 3]
        with pytest.raises(InvalidMetadataError, match=f"Missing.+{field}") as info:
            ColumnStat.from_dict(obj)
        assert info.value.field == field

    def test_first_bad_field_is_reported(self) -> None:
        with pytest.raises(InvalidMetadataError) as info:
            ColumnStat.from_dict({"name": 1, "uniqueValues": None})
        assert info.value.field == "maxLength"

    def test_bool_is_not_a_length(self) -> None:
        with pytest.raises(InvalidMetadataError, match="maxLength"):
            ColumnStat.from_dict({**VALID_COLUMN, "maxLength": True})

    def test_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            ColumnStat.from_dict({})


class TestFileMetadataFromDict:
    def test_requires_columns_list(self) -> None:
        with pytest.raises(InvalidMetadataError, match="columns"):
            FileMetadata.from_dict({"columns": "nope"})

    def test_requires_object(self) -> None:
        with pytest.raises(InvalidMetadataError, match="columns"):
            FileMetadata.from_dict([VALID_COLUMN])

    def test_column_errors_propagate(self) -> None:
        bad = {k: v for k, v in VALID_COLUMN.items() if k != "uniqueValues"}
        with pytest.raises(InvalidMetadataError, match="uniqueValues"):
            FileMetadata.from_dict({"columns": [VALID_COLUMN, bad]})

    def test_has_header_must_be_bool(self) -> None:
        with pytest.raises(InvalidMetadataError, match="hasHeader") as info:
            FileMetadata.from_dict({"columns": [], "hasHeader": "yes"})
        assert info.value.field == "hasHeader"

    @pytest.mark.parametrize("has_header", [True, False])
    def test_has_header_read_when_present(self, has_header: bool) -> None:
        metadata = FileMetadata.from_dict(
            {"columns": [{**VALID_COLUMN, "name": "col_1"}], "hasHeader": has_header}
        )
        assert metadata.has_header is has_header

    def test_missing_has_header_with_synthesized_names(self) -> None:
        columns = [{**VALID_COLUMN, "name": f"col_{i}"} for i in (1, 2)]
        assert FileMetadata.from_dict({"columns": columns}).has_header is False

    def test_missing_has_header_with_header_names(self) -> None:
        columns = [{**VALID_COLUMN, "name": name} for name in ("name", "side")]
        assert FileMetadata.from_dict({"columns": columns}).has_header is True

    def test_missing_has_header_with_misordered_synthesized_names(self) -> None:
        columns = [{**VALID_COLUMN, "name": f"col_{i}"} for i in (2, 1)]
        assert FileMetadata.from_dict({"columns": columns}).has_header is True

    def test_missing_has_header_without_columns(self) -> None:
        assert FileMetadata.from_dict({"columns": []}).has_header is False

    def test_anchor_columns_follow_columns(self) -> None:
        metadata = FileMetadata.from_dict(
            {"columns": [VALID_COLUMN, {**VALID_COLUMN, "unbounded": True, "uniqueValues": []}]}
        )
        anchors = metadata.anchor_columns
        assert [a.previous_columns for a in anchors] == [0, 1]
        assert anchors[0].column is metadata.columns[0]
        assert anchors[1].column is None


class TestFileMetadataCreate:
    def test_detects_columns_from_header(self, tmp_path: Path) -> None:
        metadata = FileMetadata.create(
            _write_characters(tmp_path), delimiter="|", max_cardinality=2
        )
        assert metadata.has_header is True
        name_col, side_col = metadata.columns
        assert name_col.name == "name"
        assert name_col.unbounded is True
        assert name_col.cardinality is None
        assert name_col.max_length == 14
        assert name_col.unique_values == set()
        assert side_col.name == "force_alignment"
        assert side_col.unbounded is False
        assert side_col.cardinality == 2
        assert side_col.max_length == 5
        assert side_col.unique_values == {"Dark", "Light"}

    def test_explicit_number_of_columns_treats_first_line_as_data(
        self, tmp_path: Path
    ) -> None:
        metadata = FileMetadata.create(
            _write_characters(tmp_path),
            delimiter="|",
            max_cardinality=3,
            number_of_columns=2,
        )
        assert metadata.has_header is False
        name_col, side_col = metadata.columns
        assert name_col.name == "col_1"
        assert name_col.unbounded is True
        assert name_col.max_length == 14
        assert side_col.name == "col_2"
        assert side_col.cardinality == 3
        assert side_col.max_length == 15
        assert side_col.unique_values == {"force_alignment", "Dark", "Light"}

    def test_skips_lines_with_wrong_field_count(self, tmp_path: Path) -> None:
        path = tmp_path / "in.txt"
        path.write_text("a|b\nx|y\nbroken|row|here\n", encoding="utf-8")
        metadata = FileMetadata.create(path, delimiter="|", max_cardinality=10)
        assert metadata.columns[0].unique_values == {"x"}
        assert metadata.columns[1].unique_values == {"y"}

    def test_empty_file_has_no_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("", encoding="utf-8")
        metadata = FileMetadata.create(path, delimiter="|", max_cardinality=10)
        assert metadata.columns == []
        assert metadata.anchor_columns == []
        assert metadata.has_header is False

    def test_writes_and_reuses_cache(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        input_path = _write_characters(tmp_path)
        cache_path = tmp_path / "cache" / "metadata.json"
        expected = FileMetadata.create(
            input_path, delimiter="|", max_cardinality=2, metadata_path=cache_path
        )
        assert cache_path.exists()
        cached = json.loads(cache_path.read_text())
        assert cached["columns"][1]["uniqueValues"] == ["Dark", "Light"]
        assert cached["columns"][0]["cardinality"] is None

        def _fail(*args: object, **kwargs: object) -> None:
            raise AssertionError("input should not be scanned when cached")

        monkeypatch.setattr("delimrepair.column_stats.iter_file_lines", _fail)
        actual = FileMetadata.create(
            input_path, delimiter="|", max_cardinality=2, metadata_path=cache_path
        )
        assert actual.columns == expected.columns
        assert actual.has_header is True

    def test_cache_is_deterministic(self, tmp_path: Path) -> None:
        input_path = _write_characters(tmp_path)
        first = tmp_path / "first.json"
        second = tmp_path / "second.json"
        FileMetadata.create(input_path, delimiter="|", max_cardinality=5, metadata_path=first)
        FileMetadata.create(input_path, delimiter="|", max_cardinality=5, metadata_path=second)
        assert first.read_bytes() == second.read_bytes()

    def test_malformed_cache_raises(self, tmp_path: Path) -> None:
        cache_path = tmp_path / "metadata.json"
        cache_path.write_text(json.dumps({"columns": [{"maxLength": 1, "name": "a"}]}))
        with pytest.raises(InvalidMetadataError, match="unbounded"):
            FileMetadata.create(
                _write_characters(tmp_path),
                delimiter="|",
                max_cardinality=2,
                metadata_path=cache_path,
            )

    def test_load_missing_cache_returns_none(self, tmp_path: Path) -> None:
        assert FileMetadata.load(tmp_path / "absent.json") is None
