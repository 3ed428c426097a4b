"""Vector-tile geometry decoding: command stream -> commands -> rings.

A feature's geometry is a flat list of unsigned 32-bit integers.  Command
integers carry an opcode in the low 3 bits and a repeat count in the rest;
MoveTo/LineTo are followed by ``2 * count`` zigzag-encoded deltas relative
to a running cursor.
"""

import logging
from enum import IntEnum
from typing import Iterable, Iterator, NamedTuple

import numpy as np

from .constants import MIN_RING_POINTS
from .errors import DecodeError
from .models import Polyline, Ring

logger = logging.getLogger(__name__)

_UINT32_MAX = 0xFFFFFFFF


class CommandType(IntEnum):
    MOVE_TO = 1
    LINE_TO = 2
    CLOSE_PATH = 7


class Command(NamedTuple):
    op: CommandType
    x: int = 0
    y: int = 0


# ── Zigzag / command integers ───────────────────────────────────────────

def zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def zigzag_encode(value: int) -> int:
    return ((value << 1) ^ (value >> 31)) & _UINT32_MAX


def command_integer(op: int, count: int) -> int:
    """Pack an opcode and repeat count into a command integer."""
    return ((count << 3) | (int(op) & 0x7)) & _UINT32_MAX


# ── Decoder ─────────────────────────────────────────────────────────────

def decode_commands(geometry: Iterable[int]) -> Iterator[Command]:
    """Lazily decode a geometry command stream.

    Yields one :class:`Command` per declared repetition; MoveTo/LineTo carry
    the absolute cursor position after applying their delta.  Raises
    :class:`DecodeError` when the offending integer is reached.
    """
    data = iter(geometry)
    offset = -1
    x = y = 0

    def _next_param() -> int:
        nonlocal offset
        try:
            raw = next(data)
        except StopIteration:
            raise DecodeError("Truncated parameter list", offset + 1) from None
        offset += 1
        return zigzag_decode(_as_uint32(raw, offset))

    for raw in data:
        offset += 1
        cmdint = _as_uint32(raw, offset)
        op = cmdint & 0x7
        count = cmdint >> 3

        if op == CommandType.CLOSE_PATH:
            for _ in range(count):
                yield Command(CommandType.CLOSE_PATH)
        elif op == CommandType.MOVE_TO or op == CommandType.LINE_TO:
            kind = CommandType(op)
            for _ in range(count):
                x += _next_param()
                y += _next_param()
                yield Command(kind, x, y)
        else:
            raise DecodeError(f"Unknown command {op}", offset)


def _as_uint32(raw, offset: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise DecodeError(f"Non-integer value {raw!r}", offset) from None
    if value < 0 or value > _UINT32_MAX:
        raise DecodeError(f"Value {value} is not an unsigned 32-bit integer", offset)
    return value


# ── Ring assembly ───────────────────────────────────────────────────────

def _make_ring(points: list) -> Ring:
    return Ring(points=np.array(points, dtype=np.float64).reshape(-1, 3))


def assemble_rings(commands: Iterable[Command],
                   min_points: int = MIN_RING_POINTS) -> list[Ring]:
    """Group decoded commands into rings.

    A ring is kept only if it holds more than ``min_points`` points; a ring
    with exactly ``min_points`` is dropped.
    """
    rings: list[Ring] = []
    points: list[tuple[float, float, float]] = []

    def _emit(explicit: bool) -> None:
        if len(points) > min_points:
            ring = _make_ring(points)
            ring.close(explicit=explicit)
            rings.append(ring)

    for cmd in commands:
        if cmd.op == CommandType.MOVE_TO:
            _emit(explicit=False)
            points = [(float(cmd.x), float(cmd.y), 0.0)]
        elif cmd.op == CommandType.LINE_TO:
            points.append((float(cmd.x), float(cmd.y), 0.0))
        else:
            _emit(explicit=True)
            points = []

    _emit(explicit=False)
    return rings


def polyline_from_geometry(geometry: Iterable[int],
                           min_points: int = MIN_RING_POINTS) -> Polyline:
    """Decode one feature's geometry into a pixel-space :class:`Polyline`."""
    return Polyline(rings=assemble_rings(decode_commands(geometry), min_points))
