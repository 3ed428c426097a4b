"""Data classes shared by the tile pipeline."""

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

from .constants import DEFAULT_EXTENT


class TileCoordinate(NamedTuple):
    x: int
    y: int
    z: int

    @classmethod
    def create(cls, x: int, y: int, z: int) -> "TileCoordinate":
        """Validated constructor: ``z >= 0`` and ``0 <= x, y < 2**z``."""
        x, y, z = int(x), int(y), int(z)
        if z < 0:
            raise ValueError(f"Tile zoom must be non-negative, got {z}")
        n = 2 ** z
        if not (0 <= x < n and 0 <= y < n):
            raise ValueError(f"Tile {x}/{y} is outside the {n}x{n} grid at zoom {z}")
        return cls(x, y, z)

    def __str__(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"


# ── Raw tile records ────────────────────────────────────────────────────
# Plain stand-ins for decoded vector-tile protobuf messages.  The pipeline
# only reads ``layers``, ``extent``, ``features`` and ``geometry``, so
# protobuf messages and these classes are interchangeable.

@dataclass
class RawFeature:
    geometry: list[int] = field(default_factory=list)


@dataclass
class RawLayer:
    extent: int = DEFAULT_EXTENT
    features: list[RawFeature] = field(default_factory=list)
    name: str = ""


@dataclass
class RawTile:
    layers: list[RawLayer] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RawTile":
        """Build from ``{"layers": [{"extent": 4096, "features": [[...], ...]}]}``.

        Features may be given as bare geometry lists or as
        ``{"geometry": [...]}`` dicts.
        """
        layers = []
        for layer in data.get("layers", []):
            features = []
            for feature in layer.get("features", []):
                if isinstance(feature, dict):
                    feature = feature.get("geometry", [])
                features.append(RawFeature(geometry=list(feature)))
            layers.append(RawLayer(
                extent=int(layer.get("extent", DEFAULT_EXTENT)),
                features=features,
                name=layer.get("name", ""),
            ))
        return cls(layers=layers)


# ── Geometry ────────────────────────────────────────────────────────────

@dataclass
class Ring:
    """Ordered point path, ``points`` is an ``(N, 3)`` float array."""
    points: np.ndarray
    closed: bool = False

    def __len__(self) -> int:
        return len(self.points)

    def close(self, explicit: bool = False) -> None:
        """Finalize the ring.

        Points are left untouched; only the ``closed`` flag is resolved.
        A ring counts as closed when its path ended in ClosePath or its
        last point lands back on its first.
        """
        if len(self.points) > 1:
            self.closed = explicit or bool(
                np.allclose(self.points[0], self.points[-1]))
        else:
            self.closed = explicit


@dataclass
class Polyline:
    rings: list[Ring] = field(default_factory=list)

    @property
    def point_count(self) -> int:
        return sum(len(r) for r in self.rings)

    @property
    def segment_count(self) -> int:
        return sum(max(len(r) - 1, 0) for r in self.rings)


@dataclass
class Mesh:
    """Triangle mesh placeholder carried by every tile."""
    vertices: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    triangles: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 3), dtype=np.uint32))

    def vertices_as_array(self) -> np.ndarray:
        return np.asarray(self.vertices, dtype=np.float32).reshape(-1)

    def triangles_as_array(self) -> np.ndarray:
        return np.asarray(self.triangles, dtype=np.uint32).reshape(-1)


class FeatureError(NamedTuple):
    index: int
    message: str


@dataclass
class Tile:
    coordinate: TileCoordinate
    polylines: list[Polyline] = field(default_factory=list)
    mesh: Mesh = field(default_factory=Mesh)
    skipped: list[FeatureError] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(p.rings for p in self.polylines)
