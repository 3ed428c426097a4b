"""globetiles: vector map tiles draped on a 3D globe.

Decodes vector-tile geometry, projects it onto a sphere and extrudes the
resulting lines into GPU-ready vertex/index buffers.
"""

from globetiles.constants import GlobeConfig
from globetiles.extrude import ExtrudedLineMesh, extrude_polylines
from globetiles.loader import LoadEvent, LoadStatus, TileLoader
from globetiles.models import Polyline, Ring, Tile, TileCoordinate
from globetiles.tile import build_tile
