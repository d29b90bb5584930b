import math
from dataclasses import dataclass, field
from typing import Annotated

import effectgraph as eg

ENTITY = eg.ValueType("Entity", int)
RADIUS = eg.ValueType("Radius", float)

type Vec2 = tuple[float, float]


@dataclass
class World:
    """Minimal entity store the nodes below close over."""

    positions: dict[int, Vec2] = field(default_factory=dict)
    kinds: dict[int, str] = field(default_factory=dict)

    def spawn(self, kind: str, position: Vec2) -> int:
        entity = len(self.positions) + 1
        self.positions[entity] = position
        self.kinds[entity] = kind
        return entity

    def within(self, center: Vec2, radius: float, kind: str) -> list[int]:
        return [
            entity
            for entity, position in self.positions.items()
            if self.kinds[entity] == kind and math.dist(center, position) <= radius
        ]


world = World()
world.spawn("target", (11.0, 0.0))
world.spawn("target", (12.0, 1.0))
world.spawn("target", (30.0, 30.0))

registry = eg.NodeRegistry()


@registry.node(output_name="v")
def const(*, value: float) -> Annotated[float, eg.FLOAT]:
    """Constant float."""
    return value


@registry.node()
def double(in_: Annotated[float, eg.FLOAT]) -> Annotated[float, eg.FLOAT]:
    """Multiply by two."""
    return in_ * 2


@registry.node(output_name="radius")
def to_radius(value: Annotated[float, eg.FLOAT]) -> Annotated[float, RADIUS]:
    """Interpret a float as a blast radius."""
    return abs(value)


@registry.node(output_name="entity", pure=False)
def projectile(
    position: Annotated[Vec2, eg.POSITION],
    direction: Annotated[Vec2, eg.DIRECTION],
    *,
    speed: float = 10.0,
    flight_time: float = 1.0,
) -> Annotated[int, ENTITY]:
    """Launch a projectile and return where it lands as a new entity."""
    norm = math.hypot(*direction) or 1.0
    distance = speed * flight_time / norm
    landing = (position[0] + direction[0] * distance, position[1] + direction[1] * distance)
    return world.spawn("projectile", landing)


@registry.node(output_name="position")
def location_of(entity: Annotated[int, ENTITY]) -> Annotated[Vec2, eg.POSITION]:
    """Current position of an entity."""
    try:
        return world.positions[entity]
    except KeyError:
        msg = f"No entity {entity}"
        raise eg.NodeFailure(msg) from None


@registry.node(outputs={"hits": eg.INT})
def explosion(position: Annotated[Vec2, eg.POSITION], radius: Annotated[float, RADIUS]) -> dict[str, int]:
    """Count the targets caught in a blast."""
    hits = world.within(position, radius, "target")
    if not hits:
        msg = f"No entities within {radius:g} of {position}"
        raise eg.NodeFailure(msg)
    return {"hits": len(hits)}


# const -> double
doubled = eg.Graph("doubled", registry)
doubled.add_instance("const", "five", value=5.0)
doubled.add_instance("double", "doubled")
doubled.connect("five", "v", "doubled", "in")

# origin, heading -> projectile -> location_of -> explosion <- to_radius <- const
blast = eg.Graph("blast", registry)
blast.add_instance("projectile", "shot")
blast.add_instance("location_of", "impact")
blast.add_instance("const", "size", value=3.0)
blast.add_instance("to_radius", "radius")
blast.add_instance("explosion", "boom")
blast.bind_external("origin", "shot", "position")
blast.bind_external("heading", "shot", "direction")
blast.connect("shot", "entity", "impact", "entity")
blast.connect("size", "v", "radius", "value")
blast.connect("impact", "position", "boom", "position")
blast.connect("radius", "radius", "boom", "radius")
