"""Tests for loading external inputs and exporting results."""

import tomllib
from pathlib import Path

import pytest
from pydantic import BaseModel

import effectgraph as eg
from effectgraph._io import export_results_to_toml, format_value, load_external_inputs

SLOTS = {"origin": eg.POSITION, "speed": eg.FLOAT}


class TestLoadExternalInputs:
    def test_values_are_converted(self, tmp_path: Path) -> None:
        path = tmp_path / "inputs.toml"
        path.write_text("origin = [1, 2.5]\nspeed = 3\n")

        values = load_external_inputs(path, SLOTS)

        assert values == {"origin": (1.0, 2.5), "speed": 3}
        assert isinstance(values["origin"], tuple)

    def test_subset_of_slots(self, tmp_path: Path) -> None:
        path = tmp_path / "inputs.toml"
        path.write_text("speed = 1.5\n")
        assert load_external_inputs(path, SLOTS) == {"speed": 1.5}

    def test_undeclared_slot(self, tmp_path: Path) -> None:
        path = tmp_path / "inputs.toml"
        path.write_text("heading = [1.0, 0.0]\n")

        with pytest.raises(eg.InputFileError, match="undeclared external slot"):
            load_external_inputs(path, SLOTS)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "inputs.toml"
        path.write_text("origin = [1, \n")

        with pytest.raises(eg.InputFileError, match="Invalid TOML"):
            load_external_inputs(path, SLOTS)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(eg.InputFileError, match="Cannot read inputs file"):
            load_external_inputs(tmp_path / "missing.toml", SLOTS)

    def test_unconvertible_value(self, tmp_path: Path) -> None:
        path = tmp_path / "inputs.toml"
        path.write_text('origin = "north"\n')

        with pytest.raises(eg.ValueTypeError, match="external slot 'origin'"):
            load_external_inputs(path, SLOTS)


class Blast(BaseModel):
    radius: float
    hits: int


class TestExportResultsToToml:
    def test_nested_by_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "results.toml"
        values = {
            eg.PortRef("doubled", "out"): 10.0,
            eg.PortRef("shot", "position"): (1.0, 2.0),
            eg.PortRef("shot", "entity"): 3,
            eg.PortRef("boom", "summary"): Blast(radius=2.0, hits=1),
        }

        export_results_to_toml(values, path)

        with path.open("rb") as f:
            data = tomllib.load(f)
        assert data == {
            "doubled": {"out": 10.0},
            "shot": {"position": [1.0, 2.0], "entity": 3},
            "boom": {"summary": {"radius": 2.0, "hits": 1}},
        }

    def test_unrepresentable_values_are_stringified(self, tmp_path: Path) -> None:
        path = tmp_path / "results.toml"

        export_results_to_toml({eg.PortRef("n", "v"): None}, path)

        with path.open("rb") as f:
            assert tomllib.load(f) == {"n": {"v": "None"}}


class TestFormatValue:
    def test_float(self) -> None:
        assert format_value(10.0) == "10"
        assert format_value(0.5) == "0.5"

    def test_tuple(self) -> None:
        assert format_value((1.0, 2.5)) == "(1, 2.5)"

    def test_other(self) -> None:
        assert format_value("fire") == "'fire'"
        assert format_value(3) == "3"
