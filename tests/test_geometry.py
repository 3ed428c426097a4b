import math

import numpy as np
import pytest

from globetiles.constants import TILE_SIZE
from globetiles.errors import ProjectionPreconditionError
from globetiles.geometry import (
    lonlat_to_pixel, lonlat_to_sphere, lonlat_to_tile, pixel_to_lonlat,
)


def test_tile_units_span_the_world_at_zoom_plus_one():
    # Tile 0/0/0 projected at zoom 1: one tile unit covers the whole map.
    lon, lat = pixel_to_lonlat(0.0, 0.0, 1)
    assert lon == pytest.approx(-180.0)
    assert lat == pytest.approx(85.05112878, abs=1e-6)

    lon, lat = pixel_to_lonlat(0.5, 0.5, 1)
    assert lon == pytest.approx(0.0)
    assert lat == pytest.approx(0.0, abs=1e-9)

    lon, lat = pixel_to_lonlat(1.0, 1.0, 1)
    assert lon == pytest.approx(180.0)
    assert lat == pytest.approx(-85.05112878, abs=1e-6)


def test_pixel_to_lonlat_is_vectorised():
    lon, lat = pixel_to_lonlat(np.array([0.0, 0.5]), np.array([0.5, 0.5]), 1)
    np.testing.assert_allclose(lon, [-180.0, 0.0])
    np.testing.assert_allclose(lat, [0.0, 0.0], atol=1e-9)


@pytest.mark.parametrize("lon,lat", [
    (0.0, 0.0), (14.4378, 50.0755), (-122.3321, 47.6062),
    (151.2153, -33.8568), (-179.5, 60.0), (179.9, -70.0),
])
@pytest.mark.parametrize("zoom", [1, 3, 8, 15])
def test_forward_then_inverse_recovers_lonlat(lon, lat, zoom):
    px, py = lonlat_to_pixel(lon, lat, zoom)
    back_lon, back_lat = pixel_to_lonlat(px, py, zoom)
    assert back_lon == pytest.approx(lon, abs=1e-9)
    assert back_lat == pytest.approx(lat, abs=1e-9)


def test_inverse_agrees_with_pyproj_web_mercator():
    pyproj = pytest.importorskip("pyproj")
    to_merc = pyproj.Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
    world = 2 * math.pi * 6378137.0

    zoom = 5
    c = TILE_SIZE * 2 ** zoom
    for lon, lat in [(14.4378, 50.0755), (-74.0445, 40.6892), (139.69, 35.69)]:
        mx, my = to_merc.transform(lon, lat)
        px = c / 2 + mx / world * c
        py = c / 2 - my / world * c
        got_lon, got_lat = pixel_to_lonlat(px, py, zoom)
        assert got_lon == pytest.approx(lon, abs=1e-7)
        assert got_lat == pytest.approx(lat, abs=1e-7)


@pytest.mark.parametrize("zoom", [0, -1, float("nan")])
def test_zoom_must_be_positive(zoom):
    with pytest.raises(ProjectionPreconditionError):
        pixel_to_lonlat(0.0, 0.0, zoom)


def test_sphere_points_sit_on_the_radius():
    lon, lat = np.meshgrid(np.linspace(-180, 180, 37), np.linspace(-89, 89, 19))
    for radius in (1.0, 1.01, 6.5):
        pts = lonlat_to_sphere(lon, lat, radius=radius)
        assert pts.shape == lon.shape + (3,)
        np.testing.assert_allclose(np.linalg.norm(pts, axis=-1), radius)


def test_sphere_orientation():
    np.testing.assert_allclose(lonlat_to_sphere(0.0, 90.0), [0.0, -1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(lonlat_to_sphere(0.0, -90.0), [0.0, 1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(lonlat_to_sphere(0.0, 0.0), [0.0, 0.0, -1.0], atol=1e-12)
    np.testing.assert_allclose(lonlat_to_sphere(90.0, 0.0), [1.0, 0.0, 0.0], atol=1e-12)


def test_lonlat_to_tile():
    assert lonlat_to_tile(0.0, 0.0, 0) == (0, 0)
    assert lonlat_to_tile(-179.9, 85.0, 2) == (0, 0)
    assert lonlat_to_tile(179.9, -85.0, 2) == (3, 3)
    assert lonlat_to_tile(14.4378, 50.0755, 12) == (2212, 1387)
    # Clamped beyond the Mercator limit
    assert lonlat_to_tile(10.0, 89.9, 3) == lonlat_to_tile(10.0, 85.06, 3)
