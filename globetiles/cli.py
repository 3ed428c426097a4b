"""Click CLI commands for globetiles."""

import asyncio
import logging

import click
from tqdm import tqdm

from .constants import GlobeConfig
from .errors import GlobeTilesError
from .loader import LoadStatus, TileLoader
from .scene import Scene
from .source import FileTileSource, WebTileSource

logger = logging.getLogger(__name__)


def _make_loader(tiles_dir: str | None) -> TileLoader:
    config = GlobeConfig.from_env()
    if tiles_dir:
        source = FileTileSource(tiles_dir)
    else:
        source = WebTileSource(config)
    return TileLoader(source, config)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """Vector-tile globe: fetch tiles, project them onto a sphere, export line meshes."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')


@cli.command()
@click.argument('z', type=int)
@click.argument('x', type=int)
@click.argument('y', type=int)
@click.option('--output', '-o', default='tile.glb', help='Output GLB file path')
@click.option('--tiles-dir', type=click.Path(exists=True, file_okay=False),
              help='Read tiles from <dir>/<z>/<x>/<y>.pbf instead of the web')
@click.option('--thickness', default=0.002, help='Line width baked into the GLB')
def tile(z: int, x: int, y: int, output: str, tiles_dir: str | None,
         thickness: float):
    """Build a single tile Z/X/Y and export its line mesh."""
    loader = _make_loader(tiles_dir)
    try:
        loader.enqueue((x, y, z))
    except ValueError as e:
        raise click.BadParameter(str(e))
    asyncio.run(async_export(loader, output, thickness))


@cli.command()
@click.option('--zoom', '-z', default=1, type=click.IntRange(0, 6),
              help='Zoom level to cover the whole globe at')
@click.option('--output', '-o', default='globe.glb', help='Output GLB file path')
@click.option('--tiles-dir', type=click.Path(exists=True, file_okay=False),
              help='Read tiles from <dir>/<z>/<x>/<y>.pbf instead of the web')
@click.option('--thickness', default=0.002, help='Line width baked into the GLB')
@click.option('--merge', is_flag=True, help='Write one combined mesh instead of a node per tile')
def globe(zoom: int, output: str, tiles_dir: str | None, thickness: float,
          merge: bool):
    """Build every tile of a zoom level and export them as one GLB."""
    loader = _make_loader(tiles_dir)
    Scene(loader).request_zoom(zoom)
    asyncio.run(async_export(loader, output, thickness, merge=merge))


async def async_export(loader: TileLoader, output: str, thickness: float,
                       merge: bool = False):
    """Drain the loader, extrude what arrived and write a GLB."""
    scene = Scene(loader)
    failed = 0
    try:
        with tqdm(total=len(loader.pending), desc="Loading tiles", unit="tile") as bar:
            while loader.pending:
                event = await loader.step()
                if event is None:
                    continue
                if event.status is LoadStatus.failed:
                    failed += 1
                    click.echo(f"Tile {event.coordinate} failed: {event.error}", err=True)
                bar.update(1)

        scene.update_tiles()
        path = scene.export_glb(output, thickness=thickness, merge=merge)
    except (GlobeTilesError, ValueError) as e:
        logger.error(f"Error exporting tiles: {e}")
        raise click.ClickException(str(e))

    segments = sum(m.segment_count for m in scene.meshes.values())
    click.echo(f"Wrote {path}: {len(scene.meshes)} tiles, {segments} segments"
               f"{f', {failed} failed' if failed else ''}")


if __name__ == '__main__':
    cli()
