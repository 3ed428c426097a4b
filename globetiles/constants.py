"""Configuration defaults and the per-loader configuration value."""

import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ── Projection ──────────────────────────────────────────────────────────
# Tile edge in projection units.  Tiles are projected at zoom z + 1, so a
# size of 0.5 makes one tile unit span exactly one slippy tile.
TILE_SIZE = 0.5

# Radius of the globe the tiles are draped on.
SPHERE_RADIUS = 1.0

# Web-Mercator latitude limit (degrees).
MAX_MERCATOR_LAT = 85.05112878

# ── Vector tiles ────────────────────────────────────────────────────────
DEFAULT_EXTENT = 4096

# Rings with this many points or fewer are dropped.
MIN_RING_POINTS = 1

# ── Tile source ─────────────────────────────────────────────────────────
DEFAULT_URL_TEMPLATE = (
    "https://api.mapbox.com/v4/mapbox.mapbox-streets-v8/"
    "{z}/{x}/{y}.vector.pbf?access_token={token}"
)
REQUEST_TIMEOUT = 30  # seconds


@dataclass(frozen=True)
class GlobeConfig:
    """Settings threaded through the tile source, builder and loader."""
    access_token: str = ""
    url_template: str = DEFAULT_URL_TEMPLATE
    tile_size: float = TILE_SIZE
    sphere_radius: float = SPHERE_RADIUS
    min_ring_points: int = MIN_RING_POINTS
    request_timeout: float = REQUEST_TIMEOUT

    @classmethod
    def from_env(cls) -> "GlobeConfig":
        """Build a config from the environment (and a ``.env`` file if present).

        Recognised variables: ``GLOBETILES_ACCESS_TOKEN``,
        ``GLOBETILES_URL_TEMPLATE``, ``GLOBETILES_SPHERE_RADIUS``,
        ``GLOBETILES_MIN_RING_POINTS``, ``GLOBETILES_REQUEST_TIMEOUT``.
        """
        load_dotenv()
        env = os.environ
        config = cls(
            access_token=env.get("GLOBETILES_ACCESS_TOKEN", "").strip(),
            url_template=env.get("GLOBETILES_URL_TEMPLATE", DEFAULT_URL_TEMPLATE),
            sphere_radius=float(env.get("GLOBETILES_SPHERE_RADIUS", SPHERE_RADIUS)),
            min_ring_points=int(env.get("GLOBETILES_MIN_RING_POINTS", MIN_RING_POINTS)),
            request_timeout=float(env.get("GLOBETILES_REQUEST_TIMEOUT", REQUEST_TIMEOUT)),
        )
        if not config.access_token and "{token}" in config.url_template:
            logger.warning("GLOBETILES_ACCESS_TOKEN is not set; "
                           "tile requests will likely be rejected")
        return config
