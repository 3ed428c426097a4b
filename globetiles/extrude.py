"""Line extrusion: projected polylines -> quad-per-segment vertex/index buffers.

Every segment ``(p0, p1)`` becomes four vertices sharing a normal direction
perpendicular to the great-circle plane through both endpoints::

    0: (p0,  n, side=1)    1: (p1,  n, side=1)
    2: (p0, -n, side=0)    3: (p1, -n, side=0)

and two triangles ``[0, 1, 2]`` and ``[1, 2, 3]``.  At rest the quad has
zero width; the line shader offsets each vertex along its normal by a
thickness uniform.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np
import trimesh

from .models import Polyline

logger = logging.getLogger(__name__)

# Floats per vertex: position (3) + normal (3) + side flag (1).
VERTEX_STRIDE = 7

_QUAD_INDICES = np.array([0, 1, 2, 1, 2, 3], dtype=np.uint32)


@dataclass
class ExtrudedLineMesh:
    vertices: np.ndarray  # (4N, 7) float32
    indices: np.ndarray   # (6N,) uint32

    @classmethod
    def empty(cls) -> "ExtrudedLineMesh":
        return cls(vertices=np.zeros((0, VERTEX_STRIDE), dtype=np.float32),
                   indices=np.zeros(0, dtype=np.uint32))

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def segment_count(self) -> int:
        return len(self.vertices) // 4

    @property
    def positions(self) -> np.ndarray:
        return self.vertices[:, 0:3]

    @property
    def normals(self) -> np.ndarray:
        return self.vertices[:, 3:6]

    @property
    def sides(self) -> np.ndarray:
        return self.vertices[:, 6]

    def as_buffers(self) -> tuple[np.ndarray, np.ndarray]:
        """Flat ``float32`` vertex data and ``uint32`` indices for GPU upload."""
        return (np.ascontiguousarray(self.vertices, dtype=np.float32).reshape(-1),
                np.ascontiguousarray(self.indices, dtype=np.uint32))

    def to_trimesh(self, thickness: float = 0.0) -> trimesh.Trimesh:
        """Quads as a trimesh, each vertex pushed ``thickness / 2`` along its normal.

        With the default thickness of 0 this is the rest pose the GPU
        receives; a positive thickness bakes in the line width the shader
        would apply, which is what a static GLB export needs.
        """
        positions = self.positions.astype(np.float64)
        if thickness:
            positions = positions + self.normals * (thickness / 2.0)
        faces = self.indices.reshape(-1, 3).astype(np.int64)
        return trimesh.Trimesh(vertices=positions,
                               faces=faces,
                               vertex_normals=self.normals.astype(np.float64),
                               process=False)


def _segment_normals(p0: np.ndarray, p1: np.ndarray) -> np.ndarray:
    """``normalize(p0 x p1)`` row-wise; degenerate segments get a zero normal."""
    cross = np.cross(p0, p1)
    length = np.linalg.norm(cross, axis=1, keepdims=True)
    out = np.zeros_like(cross)
    np.divide(cross, length, out=out, where=length > 0)
    return out


def _extrude_ring(points: np.ndarray) -> np.ndarray | None:
    """Vertices ``(4 * (N - 1), 7)`` for one ring, or None if it has no segments."""
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return None
    p0 = points[:-1]
    p1 = points[1:]
    n0 = _segment_normals(p0, p1)
    n1 = -n0

    count = len(p0)
    ones = np.ones((count, 1))
    zeros = np.zeros((count, 1))
    quad = np.stack([
        np.hstack([p0, n0, ones]),
        np.hstack([p1, n0, ones]),
        np.hstack([p0, n1, zeros]),
        np.hstack([p1, n1, zeros]),
    ], axis=1)
    return quad.reshape(-1, VERTEX_STRIDE)


def extrude_polylines(polylines: Iterable[Polyline]) -> ExtrudedLineMesh:
    """Extrude every ring of every polyline into one line mesh."""
    chunks = []
    for line in polylines:
        for ring in line.rings:
            verts = _extrude_ring(ring.points)
            if verts is not None:
                chunks.append(verts)

    if not chunks:
        return ExtrudedLineMesh.empty()

    vertices = np.concatenate(chunks).astype(np.float32)
    segments = len(vertices) // 4
    offsets = (np.arange(segments, dtype=np.uint32) * 4)[:, None]
    indices = (offsets + _QUAD_INDICES[None, :]).reshape(-1)
    logger.debug(f"Extruded {segments} segments into {len(vertices)} vertices")
    return ExtrudedLineMesh(vertices=vertices, indices=indices)


def merge_meshes(meshes: Iterable[ExtrudedLineMesh]) -> ExtrudedLineMesh:
    """Concatenate meshes, offsetting each one's indices."""
    all_verts = []
    all_indices = []
    offset = 0
    for mesh in meshes:
        if mesh.vertex_count == 0:
            continue
        all_verts.append(mesh.vertices)
        all_indices.append(mesh.indices + np.uint32(offset))
        offset += mesh.vertex_count
    if not all_verts:
        return ExtrudedLineMesh.empty()
    return ExtrudedLineMesh(vertices=np.concatenate(all_verts),
                            indices=np.concatenate(all_indices).astype(np.uint32))
