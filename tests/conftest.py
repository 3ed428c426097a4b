import sys
from pathlib import Path

import pytest

# Make ``globetiles`` and ``backend`` importable without an install.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from globetiles.errors import FetchError  # noqa: E402
from globetiles.models import RawTile  # noqa: E402

# MoveTo(0,0) LineTo(+5,0): the two-point line used across the tests.
TWO_POINT_LINE = [9, 0, 0, 10, 10, 0]


def single_feature_tile(geometry=TWO_POINT_LINE, extent=4096) -> RawTile:
    return RawTile.from_dict({"layers": [{"extent": extent, "features": [geometry]}]})


class FakeSource:
    """In-memory tile source; unknown coordinates get a one-line tile."""

    def __init__(self, tiles=None, fail=()):
        self.tiles = dict(tiles or {})
        self.fail = set(fail)
        self.calls = []

    async def fetch_tile(self, x, y, z):
        self.calls.append((x, y, z))
        if (x, y, z) in self.fail:
            raise FetchError(f"tile {z}/{x}/{y} unavailable")
        return self.tiles.get((x, y, z), single_feature_tile())


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def make_pbf():
    """Serialize layers of geometry lists into vector-tile protobuf bytes."""
    from mapbox_vector_tile.Mapbox import vector_tile_pb2

    def _make(geometries, extent=4096, name="roads"):
        message = vector_tile_pb2.tile()
        layer = message.layers.add()
        layer.name = name
        layer.version = 2
        layer.extent = extent
        for geometry in geometries:
            feature = layer.features.add()
            feature.geometry.extend(geometry)
        return message.SerializeToString()

    return _make


@pytest.fixture
def tiles_dir(tmp_path, make_pbf):
    """Directory holding tile 0/0/0 in ``<z>/<x>/<y>.pbf`` layout."""
    root = tmp_path / "tiles"
    path = root / "0" / "0" / "0.pbf"
    path.parent.mkdir(parents=True)
    path.write_bytes(make_pbf([TWO_POINT_LINE, [9, 100, 100, 18, 20, 0, 0, 20]]))
    return root
