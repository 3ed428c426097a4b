import asyncio
import logging
from typing import Optional

from globetiles.constants import GlobeConfig
from globetiles.loader import LoadEvent, TileLoader
from globetiles.models import TileCoordinate
from globetiles.scene import Scene
from globetiles.source import TileSource, WebTileSource

logger = logging.getLogger(__name__)


class TileService:
    """Loader + scene pair shared by the HTTP routes."""

    def __init__(self, source: TileSource, config: Optional[GlobeConfig] = None) -> None:
        self.loader = TileLoader(source, config, on_event=self._on_event)
        self.scene = Scene(self.loader)
        self._pump: Optional[asyncio.Task] = None
        self.last_error: Optional[str] = None

    def _on_event(self, event: LoadEvent) -> None:
        if event.error:
            logger.warning(f"Tile {event.coordinate} dropped: {event.error}")

    def request(self, x: int, y: int, z: int) -> TileCoordinate:
        coord = self.loader.enqueue((x, y, z))
        self.schedule()
        return coord

    def schedule(self) -> None:
        """Start a background pump unless one is already running."""
        if self._pump is not None and not self._pump.done():
            return
        self._pump = asyncio.get_running_loop().create_task(self.pump())

    async def pump(self) -> int:
        """Load everything queued, then extrude the new tiles."""
        try:
            events = await self.loader.drain()
            self.scene.update_tiles()
        except Exception as exc:
            logger.exception("Tile pump failed")
            self.last_error = f"Tile pump failed: {exc}"
            return 0
        self.last_error = None
        return len(events)

    def mesh_for(self, coord: TileCoordinate):
        """Line mesh for a cached tile, extruding it on first access."""
        if coord not in self.loader:
            return None
        if coord not in self.scene.meshes:
            self.scene.update_tiles()
        return self.scene.meshes.get(coord)


_tile_service: Optional[TileService] = None


def get_tile_service() -> TileService:
    global _tile_service
    if _tile_service is None:
        config = GlobeConfig.from_env()
        _tile_service = TileService(WebTileSource(config), config)
    return _tile_service
