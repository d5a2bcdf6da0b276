"""Camera, light and environment rigs.

Every function here is a pure mapping from a ``SceneParams`` snapshot (plus
the free-orbit azimuth for the camera) to renderer state, so the preview can
be recomputed on every edit and tested without a renderer.
"""

import math
from typing import NamedTuple

from .color import RGB, hex_to_rgb, light_color
from .models import (
    CameraAngle,
    LensType,
    LightSettings,
    SceneParams,
    ShotSize,
    Vector3,
    VisualStyle,
)

# Converts the 0-3 intensity slider into the renderer's physical light units.
RENDERER_INTENSITY_SCALE = 80

CAMERA_TARGET_HEIGHT = {
    ShotSize.CLOSE_UP: 1.65,  # face
    ShotSize.MEDIUM: 1.3,  # chest and shoulders
    ShotSize.FULL: 0.9,  # centre of mass
    ShotSize.WIDE: 0.9,
}

CAMERA_DISTANCE = {
    ShotSize.CLOSE_UP: 2.0,
    ShotSize.MEDIUM: 3.5,
    ShotSize.FULL: 5.5,
    ShotSize.WIDE: 8.0,
}
DEFAULT_CAMERA_DISTANCE = 4.0

# Polar angle measured from straight up. Dutch Angle applies no roll.
CAMERA_POLAR_ANGLE = {
    CameraAngle.EYE_LEVEL: math.pi / 2 - 0.1,
    CameraAngle.HIGH: math.pi / 3.5,
    CameraAngle.LOW: math.pi / 1.7,
    CameraAngle.DUTCH: math.pi / 2 - 0.1,
}

LENS_FOV = {
    LensType.MM_24: 74.0,
    LensType.MM_35: 54.0,
    LensType.MM_50: 40.0,
    LensType.MM_85: 24.0,
}
DEFAULT_FOV = 45.0

LIGHT_TARGET_HEIGHT = {
    ShotSize.CLOSE_UP: 1.6,
    ShotSize.MEDIUM: 1.3,
    ShotSize.FULL: 1.0,
    ShotSize.WIDE: 1.0,
}


class CameraState(NamedTuple):
    position: Vector3
    target: Vector3
    fov: float  # vertical, degrees


class LightState(NamedTuple):
    position: Vector3
    color: RGB
    intensity: float  # renderer units
    target: Vector3
    visible: bool


class EnvironmentState(NamedTuple):
    exposure: float
    background: RGB
    fog_color: RGB
    fog_density: float


class RenderState(NamedTuple):
    """Everything the renderer needs for one frame."""

    camera: CameraState
    key_light: LightState
    fill_light: LightState
    environment: EnvironmentState


def camera_target(shot_size: ShotSize) -> Vector3:
    return Vector3(x=0, y=CAMERA_TARGET_HEIGHT[shot_size], z=0)


def camera_distance(shot_size: ShotSize) -> float:
    return CAMERA_DISTANCE.get(shot_size, DEFAULT_CAMERA_DISTANCE)


def camera_fov(lens_type: LensType) -> float:
    return LENS_FOV.get(lens_type, DEFAULT_FOV)


def compute_camera(params: SceneParams, azimuth: float) -> CameraState:
    """Place the camera for the framing in ``params``.

    The camera sits on a sphere around the framing target. ``azimuth`` is the
    horizontal angle of the free-orbit control, kept as-is so that changing
    the framing never swings the user's point of view around the subject.
    """
    target = camera_target(params.shot_size)
    dist = camera_distance(params.shot_size)
    phi = CAMERA_POLAR_ANGLE[params.camera_angle]

    position = Vector3(
        x=target.x + dist * math.sin(phi) * math.sin(azimuth),
        y=target.y + dist * math.cos(phi),
        z=target.z + dist * math.sin(phi) * math.cos(azimuth),
    )
    return CameraState(position=position, target=target, fov=camera_fov(params.lens_type))


def light_target_y(shot_size: ShotSize) -> float:
    """Aim height for both lights, so faces stay lit in close framings."""
    return LIGHT_TARGET_HEIGHT[shot_size]


def sync_light(settings: LightSettings, shot_size: ShotSize) -> LightState:
    """Map cinematographer light settings to renderer light state."""
    intensity = settings.intensity * RENDERER_INTENSITY_SCALE if settings.enabled else 0.0
    return LightState(
        position=settings.position,
        color=light_color(settings.color_temp, settings.gel),
        intensity=intensity,
        target=Vector3(x=0, y=light_target_y(shot_size), z=0),
        visible=settings.enabled,
    )


_STUDIO_MOOD = (1.0, "#1a1a20", 0.02)

ENVIRONMENT_MOOD = {
    VisualStyle.FILM_NOIR: (0.8, "#000000", 0.05),
    VisualStyle.CYBERPUNK: (1.2, "#0b0214", 0.03),
    VisualStyle.ETHEREAL: (1.3, "#d1d5db", 0.04),
    VisualStyle.CINEMATIC: _STUDIO_MOOD,
    VisualStyle.DOCUMENTARY: _STUDIO_MOOD,
}


def compute_environment(style: VisualStyle) -> EnvironmentState:
    """Tone-mapping exposure, backdrop and fog for a visual style."""
    exposure, backdrop, density = ENVIRONMENT_MOOD[style]
    color = hex_to_rgb(backdrop)
    return EnvironmentState(
        exposure=exposure,
        background=color,
        fog_color=color,
        fog_density=density,
    )


def derive_render_state(params: SceneParams, azimuth: float) -> RenderState:
    return RenderState(
        camera=compute_camera(params, azimuth),
        key_light=sync_light(params.key_light, params.shot_size),
        fill_light=sync_light(params.fill_light, params.shot_size),
        environment=compute_environment(params.visual_style),
    )


def orbit_azimuth(position: Vector3, target: Vector3) -> float:
    """Horizontal angle of a camera position around a target."""
    return math.atan2(position.x - target.x, position.z - target.z)
