"""Decoder for Source engine ``.nav`` navigation mesh files (version 16).

The stream is little-endian with no padding. Every field of every area
record is consumed, including the ones the engine ignores (hiding spots,
encounter paths, visibility data), so the cursor stays aligned for the
next record. Parsed meshes are memoized by a CRC-32 of the raw bytes.
"""

from __future__ import annotations

import logging
import struct
import zlib
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union

from .geometry import Vec3

LOGGER = logging.getLogger(__name__)

NAV_MAGIC = 0xFEEDFACE
NAV_MAJOR_VERSION = 16
DIRECTION_COUNT = 4
LADDER_DIRECTION_COUNT = 2

_CACHE_LIMIT = 4


class FormatError(ValueError):
    """Raised when the byte stream is not a supported ``.nav`` file."""


class EmptyMeshError(FormatError):
    """Raised when a well-formed file declares zero areas."""


NoAreasError = EmptyMeshError


class MissingFileError(FileNotFoundError):
    """Raised when the requested ``.nav`` file does not exist."""


@dataclass(slots=True)
class HidingSpot:
    id: int
    position: Vec3
    attributes: int


@dataclass(slots=True)
class EncounterSpot:
    order_id: int
    distance: int
    """Parametric distance along the path, stored as ``0..255``."""


@dataclass(slots=True)
class EncounterPath:
    from_area: int
    from_direction: int
    to_area: int
    to_direction: int
    spots: List[EncounterSpot] = field(default_factory=list)


@dataclass(slots=True)
class VisibleArea:
    id: int
    attributes: int


@dataclass(slots=True)
class AreaRecord:
    """Raw area record exactly as stored on disk."""

    id: int
    flags: int
    north_west: Vec3
    south_east: Vec3
    north_east_z: float
    south_west_z: float
    connections: Tuple[List[int], List[int], List[int], List[int]]
    """Target ids per direction in on-disk order: north, east, south, west."""

    hiding_spots: List[HidingSpot] = field(default_factory=list)
    encounter_paths: List[EncounterPath] = field(default_factory=list)
    place_id: int = 0
    ladders: Tuple[List[int], List[int]] = field(default_factory=lambda: ([], []))
    """Ladder ids going up and down."""

    earliest_occupy: Tuple[float, float] = (0.0, 0.0)
    light_intensity: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    visible_areas: List[VisibleArea] = field(default_factory=list)
    inherit_visibility_from: int = 0

    @property
    def center(self) -> Vec3:
        nw, se = self.north_west, self.south_east
        return ((nw[0] + se[0]) / 2.0, (nw[1] + se[1]) / 2.0, (nw[2] + se[2]) / 2.0)


@dataclass(slots=True)
class LadderRecord:
    id: int
    width: float
    top: Vec3
    bottom: Vec3
    length: float
    direction: int
    top_areas: Tuple[int, int, int, int]
    """Connected area ids at the top: forward, left, right, behind."""

    bottom_area: int


@dataclass(slots=True)
class NavMesh:
    """Decoded ``.nav`` file."""

    minor_version: int
    bsp_size: int
    analyzed: bool
    places: List[str]
    has_unnamed_areas: bool
    areas: Dict[int, AreaRecord]
    ladders: List[LadderRecord] = field(default_factory=list)
    checksum: int = 0


class _Reader:
    """Sequential little-endian reader over a byte buffer."""

    __slots__ = ("_data", "offset")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def read(self, fmt: str) -> Tuple:
        size = struct.calcsize("<" + fmt)
        if self.offset + size > len(self._data):
            raise FormatError(
                f"Unexpected end of nav data at offset {self.offset} (need {size} bytes, have {self.remaining})"
            )
        values = struct.unpack_from("<" + fmt, self._data, self.offset)
        self.offset += size
        return values

    def one(self, fmt: str):
        return self.read(fmt)[0]

    def vec3(self) -> Vec3:
        x, y, z = self.read("fff")
        return (x, y, z)

    def id_list(self) -> List[int]:
        count = self.one("I")
        if count == 0:
            return []
        return list(self.read(f"{count}I"))

    def raw(self, size: int) -> bytes:
        if self.offset + size > len(self._data):
            raise FormatError(f"Unexpected end of nav data at offset {self.offset}")
        chunk = self._data[self.offset:self.offset + size]
        self.offset += size
        return chunk


_CACHE: "OrderedDict[Tuple[int, int], NavMesh]" = OrderedDict()


def checksum(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def clear_cache() -> None:
    _CACHE.clear()


def parse_nav(data: bytes) -> NavMesh:
    """Decode ``data`` and return a :class:`NavMesh`.

    Raises :class:`FormatError` for a bad magic number, unsupported major
    version or truncated stream, and :class:`EmptyMeshError` when the file
    holds no areas. Repeated calls with identical bytes return the cached
    mesh.
    """

    crc = checksum(data)
    key = (crc, len(data))
    cached = _CACHE.get(key)
    if cached is not None:
        _CACHE.move_to_end(key)
        LOGGER.debug("nav cache hit: crc=%08x areas=%d", crc, len(cached.areas))
        return cached

    mesh = _decode(_Reader(data))
    mesh.checksum = crc

    _CACHE[key] = mesh
    while len(_CACHE) > _CACHE_LIMIT:
        _CACHE.popitem(last=False)
    return mesh


def load_nav(path: Union[str, Path]) -> NavMesh:
    """Read and parse the ``.nav`` file at ``path``."""

    p = Path(path)
    if not p.is_file():
        raise MissingFileError(f"Nav file not found: {p}")
    return parse_nav(p.read_bytes())


def _decode(reader: _Reader) -> NavMesh:
    magic = reader.one("I")
    if magic != NAV_MAGIC:
        raise FormatError(f"Invalid nav magic 0x{magic:08X}")
    major = reader.one("I")
    if major != NAV_MAJOR_VERSION:
        raise FormatError(f"Unsupported nav version {major} (expected {NAV_MAJOR_VERSION})")
    minor, bsp_size, analyzed, place_count = reader.read("IIBH")

    places: List[str] = []
    for _ in range(place_count):
        name_len = reader.one("H")
        places.append(reader.raw(name_len).rstrip(b"\x00").decode("latin-1"))

    has_unnamed = bool(reader.one("B"))
    area_count = reader.one("I")
    if area_count == 0:
        raise EmptyMeshError("Nav file contains no areas")

    areas: Dict[int, AreaRecord] = {}
    for _ in range(area_count):
        record = _read_area(reader)
        if record.id in areas:
            LOGGER.warning("Duplicate area id %d; later record wins", record.id)
        areas[record.id] = record

    ladders: List[LadderRecord] = []
    if reader.remaining > 0:
        ladder_count = reader.one("I")
        for _ in range(ladder_count):
            ladders.append(_read_ladder(reader))

    LOGGER.debug(
        "nav decoded: version=%d.%d places=%d areas=%d ladders=%d",
        major,
        minor,
        len(places),
        len(areas),
        len(ladders),
    )
    return NavMesh(
        minor_version=minor,
        bsp_size=bsp_size,
        analyzed=bool(analyzed),
        places=places,
        has_unnamed_areas=has_unnamed,
        areas=areas,
        ladders=ladders,
    )


def _read_area(reader: _Reader) -> AreaRecord:
    area_id, flags = reader.read("II")
    nw = reader.vec3()
    se = reader.vec3()
    ne_z, sw_z = reader.read("ff")

    north = reader.id_list()
    east = reader.id_list()
    south = reader.id_list()
    west = reader.id_list()

    spots: List[HidingSpot] = []
    for _ in range(reader.one("B")):
        spot_id, x, y, z, attrs = reader.read("IfffB")
        spots.append(HidingSpot(spot_id, (x, y, z), attrs))

    paths: List[EncounterPath] = []
    for _ in range(reader.one("I")):
        from_id, from_dir, to_id, to_dir, spot_count = reader.read("IBIBB")
        enc = EncounterPath(from_id, from_dir, to_id, to_dir)
        for _ in range(spot_count):
            order_id, dist = reader.read("IB")
            enc.spots.append(EncounterSpot(order_id, dist))
        paths.append(enc)

    place_id = reader.one("H")
    ladders_up = reader.id_list()
    ladders_down = reader.id_list()
    occupy = reader.read("ff")
    light = reader.read("ffff")

    visible: List[VisibleArea] = []
    for _ in range(reader.one("I")):
        vis_id, vis_attrs = reader.read("IB")
        visible.append(VisibleArea(vis_id, vis_attrs))

    inherit = reader.one("I")
    reader.one("I")  # reserved

    return AreaRecord(
        id=area_id,
        flags=flags,
        north_west=nw,
        south_east=se,
        north_east_z=ne_z,
        south_west_z=sw_z,
        connections=(north, east, south, west),
        hiding_spots=spots,
        encounter_paths=paths,
        place_id=place_id,
        ladders=(ladders_up, ladders_down),
        earliest_occupy=(occupy[0], occupy[1]),
        light_intensity=(light[0], light[1], light[2], light[3]),
        visible_areas=visible,
        inherit_visibility_from=inherit,
    )


def _read_ladder(reader: _Reader) -> LadderRecord:
    ladder_id, width = reader.read("If")
    top = reader.vec3()
    bottom = reader.vec3()
    length, direction = reader.read("fI")
    top_areas = reader.read("IIII")
    bottom_area = reader.one("I")
    return LadderRecord(
        id=ladder_id,
        width=width,
        top=top,
        bottom=bottom,
        length=length,
        direction=direction,
        top_areas=(top_areas[0], top_areas[1], top_areas[2], top_areas[3]),
        bottom_area=bottom_area,
    )


__all__ = [
    "AreaRecord",
    "EmptyMeshError",
    "FormatError",
    "LadderRecord",
    "MissingFileError",
    "NavMesh",
    "NoAreasError",
    "clear_cache",
    "load_nav",
    "parse_nav",
]
