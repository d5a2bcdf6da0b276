"""Subject catalog and mesh placement.

Loaded models are reduced to their bounding boxes: that is all the stage
needs to frame, light and preview a subject.
"""

import json
import logging
import math
import struct
from dataclasses import dataclass
from typing import NamedTuple, Protocol

import numpy as np
import requests

from .color import RGB, hex_to_rgb
from .errors import AssetLoadError
from .models import SubjectModel

logger = logging.getLogger(__name__)

# Loaded models are scaled so their largest dimension is this many metres.
TARGET_HEIGHT = 3.0

SUBJECT_GREY = hex_to_rgb("#e0e0e0")
STAND_BLACK = hex_to_rgb("#111111")


class Bounds(NamedTuple):
    lo: tuple[float, float, float]
    hi: tuple[float, float, float]


@dataclass(frozen=True)
class Box:
    """An axis-aligned solid on the stage."""

    center: tuple[float, float, float]
    size: tuple[float, float, float]
    color: RGB = SUBJECT_GREY
    rotation_y: float = 0.0  # radians about the vertical axis through the center


@dataclass(frozen=True)
class SubjectSource:
    """Where a subject comes from and how it is seated on the floor."""

    url: str | None = None
    scale_factor: float = 1.0
    rotation_y: float = 0.0
    force_scale: bool = False
    y_offset: float = 0.0
    props: tuple[Box, ...] = ()  # primitives placed as-is


_KHRONOS = "https://raw.githubusercontent.com/KhronosGroup"

SUBJECT_CATALOG = {
    # True-to-size asset (about 1.8 m), so it keeps scale 1.0 to match framing.
    SubjectModel.MANNEQUIN: SubjectSource(
        url=(
            "https://raw.githubusercontent.com/gdquest-demos/godot-3d-mannequin/"
            "master/godot-csharp/assets/3d/mannequiny/mannequiny-0.3.0.glb"
        ),
        rotation_y=math.pi,
        force_scale=True,
    ),
    SubjectModel.DRAGON: SubjectSource(
        url=(
            f"{_KHRONOS}/glTF-Sample-Models/main/2.0/DragonAttenuation/"
            "glTF-Binary/DragonAttenuation.glb"
        ),
        rotation_y=math.pi,
        y_offset=0.05,
    ),
    SubjectModel.HELMET: SubjectSource(
        url=f"{_KHRONOS}/glTF-Sample-Assets/main/Models/DamagedHelmet/glTF-Binary/DamagedHelmet.glb",
        rotation_y=math.pi,
    ),
    SubjectModel.CAR: SubjectSource(
        url=f"{_KHRONOS}/glTF-Sample-Assets/main/Models/ToyCar/glTF-Binary/ToyCar.glb",
        rotation_y=math.pi / 2,
    ),
    SubjectModel.BOOMBOX: SubjectSource(
        url=f"{_KHRONOS}/glTF-Sample-Assets/main/Models/BoomBox/glTF-Binary/BoomBox.glb",
        rotation_y=math.pi,
        props=(Box(center=(0, 0.5, 0), size=(0.8, 1.0, 0.8), color=STAND_BLACK),),
    ),
    SubjectModel.CUBE: SubjectSource(
        props=(Box(center=(0, 0.75, 0), size=(1.5, 1.5, 1.5)),),
    ),
    SubjectModel.GEOMETRIC: SubjectSource(
        props=(
            Box(center=(-0.4, 0.25, 0.2), size=(0.5, 0.5, 0.5), rotation_y=math.pi / 4),
            Box(center=(0.4, 0.3, -0.2), size=(0.6, 0.6, 0.6)),
            Box(center=(0, 0.75, 0), size=(0.2, 1.5, 0.2)),
        ),
    ),
}

FALLBACK_BOX = Box(center=(0, 0.5, 0), size=(1.0, 1.0, 1.0))


def y_rotation(angle: float) -> np.ndarray:
    """Rotation matrix about the vertical axis."""
    cos, sin = math.cos(angle), math.sin(angle)
    return np.array([[cos, 0, sin], [0, 1, 0], [-sin, 0, cos]])


class AssetLoader(Protocol):
    def load_bounds(self, url: str) -> Bounds: ...


def read_glb_bounds(data: bytes) -> Bounds:
    """Model-space bounds of a binary glTF file.

    Taken from the POSITION accessors' min/max; node transforms are ignored.
    """
    if len(data) < 20:
        msg = "File too short to be a GLB"
        raise AssetLoadError(msg)
    magic, _version, _length = struct.unpack_from("<4sII", data, 0)
    chunk_length, chunk_type = struct.unpack_from("<I4s", data, 12)
    if magic != b"glTF" or chunk_type != b"JSON":
        msg = "Not a binary glTF file"
        raise AssetLoadError(msg)

    try:
        doc = json.loads(data[20 : 20 + chunk_length])
        accessors = doc.get("accessors", [])
        positions = [
            accessors[primitive["attributes"]["POSITION"]]
            for mesh in doc.get("meshes", [])
            for primitive in mesh.get("primitives", [])
            if "POSITION" in primitive.get("attributes", {})
        ]
        lows = np.array([accessor["min"] for accessor in positions], dtype=float)
        highs = np.array([accessor["max"] for accessor in positions], dtype=float)
    except (ValueError, KeyError, IndexError, TypeError) as e:
        msg = f"Malformed glTF document: {e}"
        raise AssetLoadError(msg) from e

    if lows.size == 0:
        msg = "glTF file has no mesh positions"
        raise AssetLoadError(msg)
    return Bounds(tuple(lows.min(axis=0)), tuple(highs.max(axis=0)))


class GltfBoundsLoader:
    """Fetches GLB models over HTTP."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def load_bounds(self, url: str) -> Bounds:
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            msg = f"Failed to fetch {url}: {e}"
            raise AssetLoadError(msg) from e
        return read_glb_bounds(response.content)


class Placement(NamedTuple):
    scale: float
    rotation_y: float
    position: tuple[float, float, float]  # translation applied after scale/rotation
    box: Box  # resulting footprint on the stage


def normalize(bounds: Bounds, source: SubjectSource) -> Placement:
    """Scale, turn and seat a model on the floor, centred on the origin."""
    lo = np.asarray(bounds.lo, dtype=float)
    hi = np.asarray(bounds.hi, dtype=float)
    max_dim = float((hi - lo).max())
    if max_dim <= 0:
        msg = "Model has empty bounds"
        raise AssetLoadError(msg)

    if source.force_scale:
        scale = source.scale_factor
    else:
        scale = TARGET_HEIGHT / max_dim * source.scale_factor

    corners = np.array(
        [[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])],
    )
    placed = corners * scale @ y_rotation(source.rotation_y).T
    new_lo, new_hi = placed.min(axis=0), placed.max(axis=0)
    center = (new_lo + new_hi) / 2

    position = (-center[0], -new_lo[1] + source.y_offset, -center[2])
    size = new_hi - new_lo
    box = Box(
        center=(0.0, size[1] / 2 + source.y_offset, 0.0),
        size=(size[0], size[1], size[2]),
    )
    return Placement(scale=scale, rotation_y=source.rotation_y, position=position, box=box)


def load_subject(model: SubjectModel, loader: AssetLoader | None = None) -> list[Box]:
    """Solids for a subject. Never raises: failed loads fall back to a cube."""
    source = SUBJECT_CATALOG[model]
    boxes = list(source.props)
    if source.url is None:
        return boxes

    if loader is None:
        loader = GltfBoundsLoader()
    try:
        placement = normalize(loader.load_bounds(source.url), source)
    except AssetLoadError as e:
        logger.warning("Could not load %s (%s). Falling back to cube.", model.value, e)
        boxes.append(FALLBACK_BOX)
    else:
        boxes.append(placement.box)
    return boxes


class OfflineLoader:
    """Never fetches; every downloadable subject becomes the fallback cube."""

    def load_bounds(self, url: str) -> Bounds:
        msg = f"Offline, not fetching {url}"
        raise AssetLoadError(msg)
