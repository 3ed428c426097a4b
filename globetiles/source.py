"""Tile sources: fetch gzip-compressed vector-tile protobufs and decode them."""

import asyncio
import gzip
import logging
import pathlib
import zlib
from typing import Protocol

import requests

from .constants import GlobeConfig
from .errors import FetchError

logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"


class TileSource(Protocol):
    async def fetch_tile(self, x: int, y: int, z: int):
        """Return the decoded vector-tile record for ``z/x/y``."""
        ...


def decode_tile_bytes(data: bytes):
    """Gunzip (if needed) and parse a vector-tile protobuf payload."""
    # The protobuf bindings pull in the encoder's geometry stack, so load
    # them only when a real payload arrives.
    from google.protobuf.message import DecodeError as ProtobufDecodeError
    from mapbox_vector_tile.Mapbox import vector_tile_pb2

    try:
        if data[:2] == _GZIP_MAGIC:
            data = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise FetchError(f"Invalid gzip payload: {e}") from e

    message = vector_tile_pb2.tile()
    try:
        message.ParseFromString(data)
    except ProtobufDecodeError as e:
        raise FetchError(f"Invalid vector tile protobuf: {e}") from e
    return message


class WebTileSource:
    """HTTP vector-tile endpoint, e.g. the Mapbox Streets tileset."""

    def __init__(self, config: GlobeConfig | None = None,
                 session: requests.Session | None = None):
        self.config = config or GlobeConfig()
        self.session = session or requests.Session()

    def get_url(self, x: int, y: int, z: int) -> str:
        return self.config.url_template.format(
            x=x, y=y, z=z, token=self.config.access_token)

    def _download(self, x: int, y: int, z: int) -> bytes:
        url = self.get_url(x, y, z)
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request for tile {z}/{x}/{y} failed: {e}") from e
        if response.status_code != 200:
            raise FetchError(f"Tile {z}/{x}/{y} responded "
                             f"{response.status_code} {response.reason}")
        return response.content

    def _load(self, x: int, y: int, z: int):
        return decode_tile_bytes(self._download(x, y, z))

    async def fetch_tile(self, x: int, y: int, z: int):
        logger.info(f"Fetching tile {z}/{x}/{y}")
        # Download and protobuf parse both run on a worker thread.
        return await asyncio.to_thread(self._load, x, y, z)


class FileTileSource:
    """Tiles stored on disk as ``<root>/<z>/<x>/<y>.pbf`` (or ``.mvt``)."""

    SUFFIXES = (".pbf", ".mvt")

    def __init__(self, root):
        self.root = pathlib.Path(root)

    def path_for(self, x: int, y: int, z: int) -> pathlib.Path | None:
        for suffix in self.SUFFIXES:
            path = self.root / str(z) / str(x) / f"{y}{suffix}"
            if path.is_file():
                return path
        return None

    async def fetch_tile(self, x: int, y: int, z: int):
        path = self.path_for(x, y, z)
        if path is None:
            raise FetchError(f"No tile file for {z}/{x}/{y} under {self.root}")
        logger.info(f"Reading tile {z}/{x}/{y} from {path}")
        return await asyncio.to_thread(_read_tile_file, path)


def _read_tile_file(path: pathlib.Path):
    return decode_tile_bytes(path.read_bytes())
