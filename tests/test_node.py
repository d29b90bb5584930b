"""Tests for node definitions, the node decorator and the registry."""

from collections.abc import Mapping
from typing import Annotated, Any

import pytest

import effectgraph as eg


def _identity(inputs: Mapping[str, Any], **_: Any) -> Mapping[str, Any]:
    return dict(inputs)


class TestNodeDefinition:
    def test_ports_are_normalized_to_tuples(self) -> None:
        definition = eg.NodeDefinition(
            id="pass",
            inputs=[eg.In("x", eg.FLOAT)],
            outputs=[eg.Out("x", eg.FLOAT)],
            evaluate=_identity,
        )
        assert definition.inputs == (eg.In("x", eg.FLOAT),)
        assert definition.input_port("x") == eg.In("x", eg.FLOAT)
        assert definition.output_port("missing") is None

    def test_requires_an_output(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="at least one output"):
            eg.NodeDefinition(id="sink", inputs=(eg.In("x", eg.FLOAT),), outputs=(), evaluate=_identity)

    def test_rejects_empty_id(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="id must not be empty"):
            eg.NodeDefinition(id="", inputs=(), outputs=(eg.Out("v", eg.FLOAT),), evaluate=_identity)

    def test_rejects_duplicate_port_names(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="more than once"):
            eg.NodeDefinition(
                id="dup",
                inputs=(eg.In("x", eg.FLOAT), eg.In("x", eg.INT)),
                outputs=(eg.Out("v", eg.FLOAT),),
                evaluate=_identity,
            )

    def test_rejects_misdirected_ports(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="listed as input"):
            eg.NodeDefinition(
                id="bad",
                inputs=(eg.Out("x", eg.FLOAT),),
                outputs=(eg.Out("v", eg.FLOAT),),
                evaluate=_identity,
            )

    def test_rejects_defaults_for_undeclared_parameters(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="undeclared parameters"):
            eg.NodeDefinition(
                id="const",
                inputs=(),
                outputs=(eg.Out("v", eg.FLOAT),),
                evaluate=_identity,
                defaults={"value": 1.0},
            )

    def test_required_parameters(self) -> None:
        definition = eg.NodeDefinition(
            id="scaled",
            inputs=(),
            outputs=(eg.Out("v", eg.FLOAT),),
            evaluate=_identity,
            parameters=("value", "scale"),
            defaults={"scale": 1.0},
        )
        assert definition.required_parameters == frozenset({"value"})

    def test_identity_semantics(self) -> None:
        """Two definitions with the same ports are still distinct objects."""
        a = eg.NodeDefinition(id="n", inputs=(), outputs=(eg.Out("v", eg.FLOAT),), evaluate=_identity)
        b = eg.NodeDefinition(id="n", inputs=(), outputs=(eg.Out("v", eg.FLOAT),), evaluate=_identity)
        assert a != b
        assert len({a, b}) == 2

    def test_repr(self) -> None:
        definition = eg.NodeDefinition(
            id="double",
            inputs=(eg.In("in", eg.FLOAT),),
            outputs=(eg.Out("out", eg.FLOAT),),
            evaluate=_identity,
        )
        assert repr(definition) == "NodeDefinition(double: (in: Float) -> (out: Float))"


class TestNodeDecorator:
    def test_single_output_from_return_annotation(self) -> None:
        @eg.node()
        def double(in_: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
            """Multiply by two."""
            return in_ * 2

        assert double.id == "double"
        assert double.inputs == (eg.In("in", eg.FLOAT),)
        assert double.outputs == (eg.Out("out", eg.FLOAT),)
        assert double.description == "Multiply by two."
        assert double.evaluate({"in": 2.5}) == {"out": 5.0}

    def test_keyword_only_parameters_become_configuration(self) -> None:
        @eg.node("const", output_name="v")
        def constant(*, value: float, scale: float = 1.0) -> Annotated[float, eg.FLOAT]:
            return value * scale

        assert constant.id == "const"
        assert constant.inputs == ()
        assert constant.parameters == ("value", "scale")
        assert dict(constant.defaults) == {"scale": 1.0}
        assert constant.evaluate({}, value=5.0, scale=2.0) == {"v": 10.0}

    def test_explicit_outputs(self) -> None:
        @eg.node(outputs={"x": eg.FLOAT, "y": eg.FLOAT})
        def split(position: Annotated[tuple[float, float], eg.POSITION]) -> dict[str, float]:
            return {"x": position[0], "y": position[1]}

        assert [port.name for port in split.outputs] == ["x", "y"]
        assert split.evaluate({"position": (1.0, 2.0)}) == {"x": 1.0, "y": 2.0}

    def test_non_keyword_trailing_underscore_is_kept(self) -> None:
        @eg.node()
        def shift(value_: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
            return value_ + 1

        assert shift.inputs == (eg.In("value_", eg.FLOAT),)

    def test_unannotated_input_is_rejected(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="must be annotated"):

            @eg.node()
            def bad(x: float) -> Annotated[float, eg.FLOAT]:
                return x

    def test_missing_outputs_are_rejected(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="must declare outputs"):

            @eg.node()
            def bad(x: Annotated[float, eg.FLOAT]) -> float:
                return x

    def test_var_args_are_rejected(self) -> None:
        with pytest.raises(eg.InvalidDefinitionError, match="unsupported kind"):

            @eg.node()
            def bad(*xs: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
                return sum(xs)

    def test_impure_flag(self) -> None:
        @eg.node(pure=False)
        def spawn(*, kind: str) -> Annotated[int, eg.INT]:
            return 1

        assert not spawn.pure


class TestNodeRegistry:
    def test_register_and_get(self) -> None:
        registry = eg.NodeRegistry()

        @registry.node(output_name="v")
        def const(*, value: float) -> Annotated[float, eg.FLOAT]:
            return value

        assert registry.get("const") is const
        assert "const" in registry
        assert len(registry) == 1
        assert list(registry) == [const]
        assert registry.definitions == (const,)

    def test_duplicate_id_is_rejected(self) -> None:
        registry = eg.NodeRegistry()
        definition = eg.NodeDefinition(id="n", inputs=(), outputs=(eg.Out("v", eg.FLOAT),), evaluate=_identity)
        registry.register(definition)

        with pytest.raises(eg.DuplicateDefinitionError, match="already registered"):
            registry.register(definition)

    def test_unknown_id(self) -> None:
        registry = eg.NodeRegistry()

        with pytest.raises(eg.UnknownDefinitionError, match="Unknown node definition 'missing'"):
            registry.get("missing")

    def test_unknown_definition_error_is_a_key_error(self) -> None:
        with pytest.raises(KeyError):
            eg.NodeRegistry().get("missing")
