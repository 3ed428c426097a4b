"""Build a :class:`Tile` of sphere-projected polylines from a raw tile record."""

import logging

from .constants import DEFAULT_EXTENT, GlobeConfig
from .errors import DecodeError
from .geometry import lonlat_to_sphere, pixel_to_lonlat
from .models import FeatureError, Polyline, Tile, TileCoordinate
from .polyline import polyline_from_geometry

logger = logging.getLogger(__name__)


def project_polyline(line: Polyline, coord: TileCoordinate, extent: float,
                     config: GlobeConfig) -> None:
    """Replace every pixel-space point of *line* with its sphere position."""
    zoom = 1.0 + coord.z
    for ring in line.rings:
        px = coord.x + ring.points[:, 0] / extent
        py = coord.y + ring.points[:, 1] / extent
        lon, lat = pixel_to_lonlat(px, py, zoom, tile_size=config.tile_size)
        ring.points = lonlat_to_sphere(lon, lat, radius=config.sphere_radius)


def build_tile(raw, x: int, y: int, z: int,
               config: GlobeConfig | None = None) -> Tile:
    """Decode and project the first layer of a raw vector-tile record.

    Features whose geometry fails to decode are skipped and listed in
    ``Tile.skipped``; they never abort the rest of the tile.
    """
    config = config or GlobeConfig()
    coord = TileCoordinate.create(x, y, z)
    tile = Tile(coordinate=coord)

    layers = getattr(raw, "layers", None) or []
    if len(layers) == 0:
        logger.debug(f"Tile {coord} has no layers")
        return tile

    # Only the first layer is drawn.
    layer = layers[0]
    extent = float(getattr(layer, "extent", 0) or DEFAULT_EXTENT)
    features = layer.features
    if len(features) == 0:
        logger.debug(f"Tile {coord} layer has no features")
        return tile

    for index, feature in enumerate(features):
        try:
            line = polyline_from_geometry(feature.geometry,
                                          min_points=config.min_ring_points)
        except DecodeError as e:
            logger.warning(f"Skipping feature {index} of tile {coord}: {e}")
            tile.skipped.append(FeatureError(index, str(e)))
            continue

        project_polyline(line, coord, extent, config)
        tile.polylines.append(line)

    points = sum(p.point_count for p in tile.polylines)
    logger.debug(f"Built tile {coord}: {len(tile.polylines)} polylines, "
                 f"{points} points, {len(tile.skipped)} skipped features")
    return tile
