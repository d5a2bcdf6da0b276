"""Software preview renderer.

A small painter's-algorithm rasterizer: enough to produce a clean plate that
carries the framing, subject silhouette and light direction of the stage.
"""

import io
import math

import numpy as np
from PIL import Image, ImageDraw

from .assets import Box, y_rotation
from .color import RGB
from .errors import CaptureNotReady
from .rig import RENDERER_INTENSITY_SCALE, CameraState, LightState
from .stage import Stage

NEAR = 0.1
AMBIENT = 0.1
GRID_SIZE = 20
GRID_COLOR = (51, 51, 51)
AXIS_COLORS = ((255, 64, 64), (64, 255, 64), (64, 128, 255))

# Faces of a unit cube as corner indices, with outward normals.
_FACES = (
    ((0, 1, 3, 2), (-1, 0, 0)),
    ((4, 6, 7, 5), (1, 0, 0)),
    ((0, 4, 5, 1), (0, -1, 0)),
    ((2, 3, 7, 6), (0, 1, 0)),
    ((0, 2, 6, 4), (0, 0, -1)),
    ((1, 5, 7, 3), (0, 0, 1)),
)


def _vec(v) -> np.ndarray:
    return np.array([v.x, v.y, v.z], dtype=float)


def _to_bytes(color, gain: float = 1.0) -> tuple[int, int, int]:
    return tuple(int(min(max(c * gain, 0.0), 1.0) * 255) for c in color)


class Camera:
    """Pinhole projection for a ``CameraState``."""

    def __init__(self, state: CameraState, width: int, height: int) -> None:
        self.eye = _vec(state.position)
        forward = _vec(state.target) - self.eye
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, (0.0, 1.0, 0.0))
        right /= np.linalg.norm(right)
        up = np.cross(right, forward)
        self.rotation = np.stack([right, up, forward])
        self.focal = 1 / math.tan(math.radians(state.fov) / 2)
        self.width = width
        self.height = height

    def project(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Pixel coordinates and view depth of world points (N x 3)."""
        view = (np.atleast_2d(points) - self.eye) @ self.rotation.T
        depth = view[:, 2]
        safe = np.where(depth > NEAR, depth, NEAR)
        aspect = self.width / self.height
        x = (view[:, 0] * self.focal / aspect / safe + 1) / 2 * self.width
        y = (1 - view[:, 1] * self.focal / safe) / 2 * self.height
        return np.stack([x, y], axis=1), depth

    def pixel_radius(self, radius: float, depth: float) -> float:
        return radius * self.focal / depth * self.height / 2


class PreviewRenderer:
    """Renders a ``Stage`` to an in-memory frame."""

    def __init__(self, width: int = 1280, height: int = 720) -> None:
        self.width = width
        self.height = height
        self._frame: Image.Image | None = None

    @property
    def ready(self) -> bool:
        return self.width > 0 and self.height > 0

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._frame = None

    def render(self, stage: Stage) -> None:
        if not self.ready or stage.camera is None or stage.environment is None:
            raise CaptureNotReady
        camera = Camera(stage.camera, self.width, self.height)
        env = stage.environment

        image = Image.new("RGB", (self.width, self.height), _to_bytes(env.background, env.exposure))
        draw = ImageDraw.Draw(image)

        if stage.grid.visible:
            self._draw_grid(draw, camera)

        lights = [light for light in (stage.key_light, stage.fill_light) if light is not None]
        for box in stage.subject:
            self._draw_box(draw, camera, box, lights, env.exposure)

        for gizmo in (stage.key_gizmo, stage.fill_gizmo):
            if not gizmo.visible:
                continue
            (center,), (depth,) = camera.project(_vec(gizmo.position))
            if depth > NEAR:
                r = camera.pixel_radius(gizmo.radius, depth)
                draw.ellipse(
                    [center[0] - r, center[1] - r, center[0] + r, center[1] + r],
                    outline=_to_bytes(gizmo.color),
                )

        handle = stage.transform.object
        if stage.transform.visible and handle is not None:
            origin = _vec(handle.position)
            for axis, color in zip(np.eye(3), AXIS_COLORS):
                self._draw_segment(draw, camera, origin, origin + axis * 0.6, color, width=2)

        self._frame = image

    def read_image(self, quality: float = 0.9) -> bytes:
        """Encode the last rendered frame as JPEG."""
        if self._frame is None:
            raise CaptureNotReady
        buffer = io.BytesIO()
        self._frame.save(buffer, format="JPEG", quality=round(quality * 100))
        return buffer.getvalue()

    def _draw_segment(self, draw, camera, start, end, color, width=1) -> None:
        (a, b), depth = camera.project(np.stack([start, end]))
        if (depth > NEAR).all():
            draw.line([tuple(a), tuple(b)], fill=color, width=width)

    def _draw_grid(self, draw, camera: Camera) -> None:
        half = GRID_SIZE / 2
        for i in range(GRID_SIZE + 1):
            offset = i - half
            # Split lines so segments behind the camera can be dropped.
            for j in range(GRID_SIZE):
                s, e = j - half, j + 1 - half
                self._draw_segment(draw, camera, (offset, 0.01, s), (offset, 0.01, e), GRID_COLOR)
                self._draw_segment(draw, camera, (s, 0.01, offset), (e, 0.01, offset), GRID_COLOR)

    def _draw_box(
        self,
        draw,
        camera: Camera,
        box: Box,
        lights: list[LightState],
        exposure: float,
    ) -> None:
        center = np.asarray(box.center, dtype=float)
        half = np.asarray(box.size, dtype=float) / 2
        rotation = y_rotation(box.rotation_y)
        offsets = np.array(
            [half * (sx, sy, sz) for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)],
        )
        corners = center + offsets @ rotation.T
        pixels, depth = camera.project(corners)
        if (depth <= NEAR).any():
            return

        faces = []
        for indices, normal in _FACES:
            normal = rotation @ np.asarray(normal, dtype=float)
            face_center = corners[list(indices)].mean(axis=0)
            if np.dot(normal, camera.eye - face_center) <= 0:
                continue
            shade = self._shade(face_center, normal, box.color, lights)
            faces.append((depth[list(indices)].mean(), indices, shade))

        for _, indices, shade in sorted(faces, reverse=True):
            draw.polygon(
                [tuple(pixels[i]) for i in indices],
                fill=_to_bytes(shade, exposure),
            )

    def _shade(self, point, normal, albedo: RGB, lights: list[LightState]) -> RGB:
        total = np.full(3, AMBIENT)
        for light in lights:
            if light.intensity <= 0:
                continue
            direction = _vec(light.position) - point
            distance = np.linalg.norm(direction)
            lambert = max(float(np.dot(normal, direction / distance)), 0.0)
            # Inverse-square falloff, normalized so a unit-intensity light at 2 m reads as 1.
            falloff = light.intensity / RENDERER_INTENSITY_SCALE * 4 / max(distance**2, 1e-6)
            total += np.asarray(light.color) * lambert * falloff
        return RGB(*(np.asarray(albedo) * total))
