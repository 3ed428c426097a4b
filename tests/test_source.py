import asyncio
import gzip
import logging
import threading

import pytest
import requests

from globetiles.constants import GlobeConfig
from globetiles.errors import FetchError
from globetiles.loader import LoadStatus, TileLoader
from globetiles.source import FileTileSource, WebTileSource, decode_tile_bytes
from globetiles.tile import build_tile


class FakeResponse:
    def __init__(self, status_code=200, content=b"", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_decode_plain_and_gzipped_payloads(make_pbf):
    data = make_pbf([[9, 0, 0, 10, 10, 0]], extent=512)
    for payload in (data, gzip.compress(data)):
        message = decode_tile_bytes(payload)
        assert len(message.layers) == 1
        assert message.layers[0].extent == 512
        assert list(message.layers[0].features[0].geometry) == [9, 0, 0, 10, 10, 0]


def test_decoded_protobuf_feeds_the_builder(make_pbf):
    message = decode_tile_bytes(make_pbf([[9, 0, 0, 10, 10, 0], [9, 0, 0, 12]]))
    tile = build_tile(message, 0, 0, 0)
    assert len(tile.polylines) == 1
    assert len(tile.skipped) == 1


@pytest.mark.parametrize("payload", [b"\x1f\x8bnot gzip", b"\x0a\xff\xff"])
def test_decode_rejects_garbage(payload):
    with pytest.raises(FetchError):
        decode_tile_bytes(payload)


def test_decode_rejects_corrupt_deflate_stream(make_pbf):
    payload = bytearray(gzip.compress(make_pbf([[9, 0, 0, 10, 10, 0]])))
    # First byte of the deflate body: block type 0b11 is reserved.
    payload[10] = 0xFF
    with pytest.raises(FetchError, match="gzip"):
        decode_tile_bytes(bytes(payload))


def test_corrupt_payload_is_a_fetch_failure_in_the_loader(make_pbf, caplog):
    payload = bytearray(gzip.compress(make_pbf([[9, 0, 0, 10, 10, 0]])))
    payload[10] = 0xFF
    source = WebTileSource(session=FakeSession(FakeResponse(content=bytes(payload))))
    loader = TileLoader(source)
    loader.enqueue((0, 0, 0))

    with caplog.at_level(logging.WARNING, logger="globetiles.loader"):
        event = asyncio.run(loader.step())

    assert event.status is LoadStatus.failed
    assert "gzip" in event.error
    assert [r.levelno for r in caplog.records] == [logging.WARNING]


def test_url_template_is_filled_from_config():
    config = GlobeConfig(access_token="secret",
                         url_template="https://tiles.example/{z}/{x}/{y}.pbf?key={token}")
    source = WebTileSource(config, session=FakeSession())
    assert source.get_url(3, 5, 7) == "https://tiles.example/7/3/5.pbf?key=secret"


def test_web_source_fetches_and_decodes(make_pbf):
    session = FakeSession(FakeResponse(content=gzip.compress(make_pbf([[9, 0, 0, 10, 10, 0]]))))
    config = GlobeConfig(url_template="http://local/{z}/{x}/{y}", request_timeout=5)
    source = WebTileSource(config, session=session)

    message = asyncio.run(source.fetch_tile(1, 0, 1))

    assert session.requests == [("http://local/1/1/0", 5)]
    assert len(message.layers[0].features) == 1


def test_web_source_http_error_raises_fetch_error():
    source = WebTileSource(session=FakeSession(FakeResponse(404, reason="Not Found")))
    with pytest.raises(FetchError, match="404"):
        asyncio.run(source.fetch_tile(0, 0, 0))


def test_web_source_transport_error_raises_fetch_error():
    source = WebTileSource(session=FakeSession(exc=requests.ConnectionError("boom")))
    with pytest.raises(FetchError, match="boom"):
        asyncio.run(source.fetch_tile(0, 0, 0))


def test_file_source(tiles_dir):
    source = FileTileSource(tiles_dir)
    message = asyncio.run(source.fetch_tile(0, 0, 0))
    assert len(message.layers[0].features) == 2

    with pytest.raises(FetchError):
        asyncio.run(source.fetch_tile(1, 1, 1))


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("GLOBETILES_ACCESS_TOKEN", " abc ")
    monkeypatch.setenv("GLOBETILES_SPHERE_RADIUS", "1.02")
    monkeypatch.setenv("GLOBETILES_MIN_RING_POINTS", "2")
    config = GlobeConfig.from_env()
    assert config.access_token == "abc"
    assert config.sphere_radius == 1.02
    assert config.min_ring_points == 2


@pytest.mark.parametrize("kind", ["web", "file"])
def test_decode_runs_off_the_event_loop(kind, monkeypatch, make_pbf, tiles_dir):
    started = threading.Event()
    ticked = threading.Event()

    def slow_decode(data):
        started.set()
        # Only comes back True if the loop kept running meanwhile.
        return ticked.wait(timeout=2)

    monkeypatch.setattr("globetiles.source.decode_tile_bytes", slow_decode)
    if kind == "web":
        source = WebTileSource(session=FakeSession(FakeResponse(content=make_pbf([]))))
    else:
        source = FileTileSource(tiles_dir)

    async def ticker():
        while not started.is_set():
            await asyncio.sleep(0.001)
        ticked.set()

    async def main():
        result, _ = await asyncio.gather(source.fetch_tile(0, 0, 0), ticker())
        return result

    assert asyncio.run(main()) is True
