"""Scene layer: picks tiles to load and keeps one line mesh per loaded tile."""

import logging
import pathlib
from dataclasses import dataclass
from typing import Iterator

import numpy as np
import trimesh

from .extrude import ExtrudedLineMesh, extrude_polylines, merge_meshes
from .geometry import lonlat_to_tile
from .loader import TileLoader
from .models import TileCoordinate

logger = logging.getLogger(__name__)

# Pitch clamp for the globe (radians), keeps the poles from flipping over.
MAX_PITCH = np.pi * 0.4


def tiles_at_zoom(zoom: int) -> list[TileCoordinate]:
    """Every tile of a zoom level, row by row."""
    n = 2 ** int(zoom)
    return [TileCoordinate(x, y, int(zoom)) for y in range(n) for x in range(n)]


def globe_rotation(pitch: float, yaw: float) -> np.ndarray:
    """4x4 model matrix: rotate about Y by *yaw*, then about X by *pitch*."""
    cp, sp = np.cos(pitch), np.sin(pitch)
    cy, sy = np.cos(yaw), np.sin(yaw)
    rot_x = np.array([[1, 0, 0, 0],
                      [0, cp, -sp, 0],
                      [0, sp, cp, 0],
                      [0, 0, 0, 1]], dtype=np.float64)
    rot_y = np.array([[cy, 0, sy, 0],
                      [0, 1, 0, 0],
                      [-sy, 0, cy, 0],
                      [0, 0, 0, 1]], dtype=np.float64)
    return rot_x @ rot_y


@dataclass
class SceneItem:
    coordinate: TileCoordinate
    mesh: ExtrudedLineMesh
    transform: np.ndarray


class Scene:
    def __init__(self, loader: TileLoader):
        self.loader = loader
        self.meshes: dict[TileCoordinate, ExtrudedLineMesh] = {}
        self.pitch = 0.0
        self.yaw = 0.0
        self.transform = np.eye(4)

    def request_zoom(self, zoom: int) -> int:
        """Queue every tile of *zoom*; returns how many were queued."""
        coords = tiles_at_zoom(zoom)
        for coord in coords:
            self.loader.enqueue(coord)
        logger.info(f"Requested {len(coords)} tiles at zoom {zoom}")
        return len(coords)

    def request_point(self, lon: float, lat: float, zoom: int) -> TileCoordinate:
        """Queue the tile under a lon/lat, e.g. the point facing the camera."""
        x, y = lonlat_to_tile(lon, lat, zoom)
        return self.loader.enqueue((x, y, zoom))

    def update_tiles(self) -> list[TileCoordinate]:
        """Extrude every loaded tile not seen before; returns the new ones."""
        added = []
        for coord, tile in self.loader.tiles():
            if coord in self.meshes:
                continue
            self.meshes[coord] = extrude_polylines(tile.polylines)
            added.append(coord)
        if added:
            logger.debug(f"Scene picked up {len(added)} new tiles "
                         f"({len(self.meshes)} total)")
        return added

    def rotate(self, d_pitch: float, d_yaw: float) -> np.ndarray:
        """Spin the globe; pitch is clamped to +-MAX_PITCH."""
        self.pitch = float(np.clip(self.pitch + d_pitch, -MAX_PITCH, MAX_PITCH))
        self.yaw += d_yaw
        self.transform = globe_rotation(self.pitch, self.yaw)
        return self.transform

    def items(self) -> Iterator[SceneItem]:
        for coord, mesh in self.meshes.items():
            yield SceneItem(coordinate=coord, mesh=mesh, transform=self.transform)

    def combined_mesh(self) -> ExtrudedLineMesh:
        """All tile meshes in a single vertex/index buffer."""
        return merge_meshes(self.meshes.values())

    def export_glb(self, output_path, thickness: float = 0.002,
                   merge: bool = False) -> pathlib.Path:
        """Write every tile mesh into one GLB.

        One node per tile, or a single ``globe`` node when *merge* is set.
        """
        output_path = pathlib.Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        glb_scene = trimesh.Scene()
        if merge:
            combined = self.combined_mesh()
            if combined.vertex_count:
                glb_scene.add_geometry(combined.to_trimesh(thickness=thickness),
                                       geom_name="globe", transform=self.transform)
        else:
            for item in self.items():
                if item.mesh.vertex_count == 0:
                    continue
                mesh = item.mesh.to_trimesh(thickness=thickness)
                name = f"tile_{item.coordinate.z}_{item.coordinate.x}_{item.coordinate.y}"
                glb_scene.add_geometry(mesh, geom_name=name, transform=item.transform)

        if len(glb_scene.geometry) == 0:
            raise ValueError("No tile geometry to export")

        glb_scene.export(str(output_path), file_type='glb')
        logger.info(f"GLB file generated successfully: {output_path}")
        return output_path
