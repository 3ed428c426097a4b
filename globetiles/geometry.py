"""Coordinate transforms: tile pixels <-> lon/lat, lon/lat -> unit sphere."""

import math
import logging

import numpy as np

from .constants import MAX_MERCATOR_LAT, SPHERE_RADIUS, TILE_SIZE
from .errors import ProjectionPreconditionError

logger = logging.getLogger(__name__)


def _check_zoom(zoom: float) -> None:
    if not zoom > 0:
        raise ProjectionPreconditionError(
            f"Inverse Mercator needs zoom > 0, got {zoom}")


# ── Web-Mercator ────────────────────────────────────────────────────────

def pixel_to_lonlat(px, py, zoom: float, tile_size: float = TILE_SIZE):
    """Inverse spherical Mercator for tile pixel coordinates.

    ``px``/``py`` may be scalars or numpy arrays.  Returns ``(lon, lat)`` in
    degrees with the same shape as the input.
    """
    _check_zoom(zoom)
    c = tile_size * 2.0 ** zoom
    bc = c / 360.0
    cc = c / (2.0 * math.pi)
    e = c / 2.0

    lon = (np.asarray(px, dtype=np.float64) - e) / bc
    g = (np.asarray(py, dtype=np.float64) - e) / -cc
    lat = np.degrees(2.0 * np.arctan(np.exp(g)) - math.pi / 2.0)
    if lon.ndim == 0:
        return float(lon), float(lat)
    return lon, lat


def lonlat_to_pixel(lon, lat, zoom: float, tile_size: float = TILE_SIZE):
    """Forward spherical Mercator, the inverse of :func:`pixel_to_lonlat`."""
    _check_zoom(zoom)
    c = tile_size * 2.0 ** zoom
    bc = c / 360.0
    cc = c / (2.0 * math.pi)
    e = c / 2.0

    lat_rad = np.radians(np.asarray(lat, dtype=np.float64))
    px = e + np.asarray(lon, dtype=np.float64) * bc
    py = e - cc * np.log(np.tan(math.pi / 4.0 + lat_rad / 2.0))
    if px.ndim == 0:
        return float(px), float(py)
    return px, py


def lonlat_to_tile(lon: float, lat: float, z: int) -> tuple[int, int]:
    """Slippy tile ``(x, y)`` containing a lon/lat at zoom ``z``."""
    n = 2 ** int(z)
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, float(lat)))
    lat_rad = math.radians(lat)

    x = int(math.floor((float(lon) + 180.0) / 360.0 * n))
    y = int(math.floor(
        (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi)
        / 2.0 * n))
    return max(0, min(n - 1, x)), max(0, min(n - 1, y))


# ── Sphere ──────────────────────────────────────────────────────────────

def lonlat_to_sphere(lon, lat, radius: float = SPHERE_RADIUS) -> np.ndarray:
    """Place lon/lat (degrees) on a sphere of ``radius``.

    Latitude is measured from the pole (``lat - 90``): the north pole lands
    on ``(0, -radius, 0)``, the top of the globe in the viewer's y-down
    frame.  Returns an array of shape ``(..., 3)``.
    """
    lon_rad = np.radians(np.asarray(lon, dtype=np.float64))
    lat_rad = np.radians(np.asarray(lat, dtype=np.float64) - 90.0)

    x = -radius * np.sin(lat_rad) * np.sin(lon_rad)
    y = -radius * np.cos(lat_rad)
    z = radius * np.sin(lat_rad) * np.cos(lon_rad)
    return np.stack([x, y, z], axis=-1)
