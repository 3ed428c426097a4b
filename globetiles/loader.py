"""Tile queue and cache: fetch one tile at a time, keep every result.

The loader owns both the pending queue and the cache.  ``step()`` claims the
``fetching`` state before its first ``await``, so on a single event loop a
second caller sees the loader busy and returns immediately instead of
blocking the frame loop.

Neither the cache nor the queue is ever pruned: memory grows with the area
explored.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from .constants import GlobeConfig
from .errors import FetchError
from .models import Tile, TileCoordinate
from .source import TileSource
from .tile import build_tile

logger = logging.getLogger(__name__)


class LoaderState(str, Enum):
    idle = "idle"
    fetching = "fetching"


class LoadStatus(str, Enum):
    loaded = "loaded"
    failed = "failed"


@dataclass
class LoadEvent:
    coordinate: TileCoordinate
    status: LoadStatus
    tile: Optional[Tile] = None
    error: Optional[str] = None


class TileLoader:
    def __init__(self, source: TileSource, config: GlobeConfig | None = None,
                 on_event: Callable[[LoadEvent], None] | None = None) -> None:
        self.source = source
        self.config = config or GlobeConfig()
        self.on_event = on_event
        self._queue: list[TileCoordinate] = []
        self._cache: dict[TileCoordinate, Tile] = {}
        self._state = LoaderState.idle
        self._current: TileCoordinate | None = None

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def enqueue(self, coord) -> TileCoordinate:
        """Queue a tile.  Duplicates are not filtered."""
        coord = TileCoordinate.create(*coord)
        self._queue.append(coord)
        logger.debug(f"Queued tile {coord} ({len(self._queue)} pending)")
        return coord

    @property
    def pending(self) -> list[TileCoordinate]:
        return list(self._queue)

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def current(self) -> TileCoordinate | None:
        """Coordinate being fetched, if any."""
        return self._current

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def lookup(self, coord) -> Tile | None:
        return self._cache.get(TileCoordinate(*coord))

    def tiles(self) -> list[tuple[TileCoordinate, Tile]]:
        """Snapshot of the cache as ``(coordinate, tile)`` pairs."""
        return list(self._cache.items())

    def __contains__(self, coord) -> bool:
        return TileCoordinate(*coord) in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[TileCoordinate]:
        return iter(list(self._cache))

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def step(self) -> LoadEvent | None:
        """Fetch and build the most recently queued tile.

        Returns None without doing anything when a fetch is already in
        flight or nothing is queued.  Failures drop the coordinate and come
        back as a ``failed`` event; they are not retried.
        """
        if self._state is LoaderState.fetching or not self._queue:
            return None

        coord = self._queue.pop()
        self._state = LoaderState.fetching
        self._current = coord
        try:
            raw = await self.source.fetch_tile(coord.x, coord.y, coord.z)
            tile = await asyncio.to_thread(
                build_tile, raw, coord.x, coord.y, coord.z, self.config)
        except FetchError as exc:
            logger.warning(f"Failed to fetch tile {coord}: {exc}")
            event = LoadEvent(coordinate=coord, status=LoadStatus.failed,
                              error=str(exc))
        except Exception as exc:
            logger.exception(f"Failed to build tile {coord}")
            event = LoadEvent(coordinate=coord, status=LoadStatus.failed,
                              error=str(exc))
        else:
            self._cache[coord] = tile
            logger.info(f"Loaded tile {coord}: {len(tile.polylines)} polylines"
                        f" ({len(self._cache)} cached, {len(self._queue)} pending)")
            event = LoadEvent(coordinate=coord, status=LoadStatus.loaded, tile=tile)
        finally:
            self._state = LoaderState.idle
            self._current = None

        if self.on_event is not None:
            self.on_event(event)
        return event

    def kick(self) -> asyncio.Task | None:
        """Schedule ``step()`` on the running loop if there is work to do.

        Meant to be called once per frame; returns immediately.
        """
        if self._state is LoaderState.fetching or not self._queue:
            return None
        return asyncio.get_running_loop().create_task(self.step())

    async def drain(self) -> list[LoadEvent]:
        """Step until the queue is empty."""
        events = []
        while self._queue:
            event = await self.step()
            if event is None:
                # Another task holds the fetch; let it finish.
                await asyncio.sleep(0.01)
                continue
            events.append(event)
        return events
