"""Tests for the effectgraph command line interface."""

import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from effectgraph._cli.main import app

ROOT = Path(__file__).parent.parent
EFFECTS = str(ROOT / "examples" / "effects.py")
INPUTS = str(ROOT / "examples" / "inputs.toml")

runner = CliRunner()


@pytest.fixture
def outside_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from a directory with no [tool.effectgraph] configuration."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCheck:
    def test_valid_graph(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["check", EFFECTS, "--graph", "blast"])

        assert result.exit_code == 0, result.output
        assert "Graph is valid" in result.output
        assert "$origin" in result.output

    def test_unbound_input(self, outside_project: Path) -> None:
        script = outside_project / "unbound_graph.py"
        script.write_text(
            """
from typing import Annotated
import effectgraph as eg

@eg.node()
def double(in_: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
    return in_ * 2

graph = eg.Graph("unbound")
graph.add_instance(double, "d")
""",
        )

        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 1
        assert "d.in is not bound" in result.output

    def test_no_graph_and_no_configuration(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "No graph given" in result.output

    def test_graph_from_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(ROOT)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0, result.output
        assert "blast" in result.output


class TestEval:
    def test_with_inputs(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["eval", EFFECTS, "--graph", "blast", "-i", INPUTS, "-w", "boom.hits"])

        assert result.exit_code == 0, result.output
        assert "boom.hits" in result.output
        assert "Evaluation complete" in result.output

    def test_export(self, outside_project: Path) -> None:
        output = outside_project / "results.toml"

        result = runner.invoke(
            app,
            ["eval", EFFECTS, "--graph", "blast", "-i", INPUTS, "-w", "boom.hits", "-w", "size.v", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        with output.open("rb") as f:
            assert tomllib.load(f) == {"boom": {"hits": 2}, "size": {"v": 3.0}}

    def test_graph_without_slots(self, outside_project: Path) -> None:
        output = outside_project / "doubled.toml"

        result = runner.invoke(app, ["eval", EFFECTS, "--graph", "doubled", "-o", str(output)])

        assert result.exit_code == 0, result.output
        with output.open("rb") as f:
            assert tomllib.load(f) == {"five": {"v": 5.0}, "doubled": {"out": 10.0}}

    def test_missing_external_input(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["eval", EFFECTS, "--graph", "blast"])

        assert result.exit_code == 1
        assert "No value supplied for external slot 'origin'" in result.output

    def test_malformed_want(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["eval", EFFECTS, "--graph", "doubled", "-w", "doubled"])

        assert result.exit_code == 1
        assert "Invalid port reference" in result.output


class TestTree:
    def test_dependency_tree(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["tree", "boom.hits", EFFECTS, "--graph", "blast"])

        assert result.exit_code == 0, result.output
        for source in ("impact.position", "shot.entity", "$origin", "$heading", "size.v"):
            assert source in result.output

    def test_max_depth(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["tree", "boom.hits", EFFECTS, "--graph", "blast", "--max-depth", "1"])

        assert result.exit_code == 0, result.output
        assert "impact.position" in result.output
        assert "shot.entity" not in result.output

    def test_unknown_port(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["tree", "boom.misses", EFFECTS, "--graph", "blast"])

        assert result.exit_code == 1


class TestNodes:
    def test_lists_definitions(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["nodes", EFFECTS, "--registry", "registry"])

        assert result.exit_code == 0, result.output
        for definition_id in ("const", "double", "explosion", "location_of", "projectile", "to_radius"):
            assert definition_id in result.output
        assert "impure" in result.output


class TestChains:
    def test_suggests_chains(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["chains", EFFECTS, "--registry", "registry", "-p", "Radius"])

        assert result.exit_code == 0, result.output
        assert "Total: 3 chains" in result.output

    def test_max_length(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["chains", EFFECTS, "--registry", "registry", "-p", "Radius", "--max-length", "2"])

        assert result.exit_code == 0, result.output
        assert "Total: 1 chains" in result.output

    def test_unknown_type(self, outside_project: Path) -> None:
        result = runner.invoke(app, ["chains", EFFECTS, "--registry", "registry", "-p", "Mana"])

        assert result.exit_code == 1
        assert "Unknown value type 'Mana'" in result.output
