"""Prompt text for the generation engines, built from a frozen scene."""

from .color import gel_name, temperature_description
from .models import LightSettings, SceneParams


def describe_light(role: str, light: LightSettings) -> str:
    return (
        f"{role} Light: {temperature_description(light.color_temp)} "
        f"({light.color_temp}K) with {gel_name(light.gel)} gel, "
        f"positioned at [x:{light.position.x:.1f}, y:{light.position.y:.1f}], "
        f"intensity {light.intensity * 100:.0f}%."
    )


def lighting_description(params: SceneParams) -> str:
    """Key light, plus the fill light when it is switched on."""
    description = describe_light("Key", params.key_light)
    if params.fill_light.enabled:
        description += " " + describe_light("Fill", params.fill_light)
    return description


def camera_description(params: SceneParams) -> str:
    return f"{params.shot_size.value}, {params.camera_angle.value}, {params.lens_type.value} lens"


def studio_prompt(params: SceneParams) -> str:
    """Single-paragraph prompt for text-to-image engines (Bria, fal)."""
    return (
        f"High-end studio photography, {params.visual_style.value} style. "
        f"Subject: {params.subject_description}. "
        f"Lighting Setup: {lighting_description(params)} "
        f"Camera: {camera_description(params)}. "
        "Breathtaking, photorealistic, 8k resolution, highly detailed texture, "
        "sharp focus, cinematic lighting."
    )


def reference_prompt(params: SceneParams) -> str:
    """Prompt for engines that also receive the clean plate (Gemini)."""
    return (
        "Generate a high-quality cinematic image based on this scene description "
        "and the provided reference image (if available) for composition.\n\n"
        "REFERENCE IMAGE INSTRUCTIONS:\n"
        "- Strictly follow the camera angle, framing, and perspective of the "
        "provided reference image.\n"
        "- Keep the subject position exactly as shown in the reference.\n"
        "- Use the reference image *only* for structure/layout, not for the visual "
        "style or final subject appearance (replace the 3D model with the realistic "
        "subject described below).\n\n"
        "SCENE DETAILS:\n"
        f"Subject: {params.subject_description} "
        "(Replace the proxy 3D models with this).\n"
        f"Lighting Setup: {lighting_description(params)}\n"
        f"Camera: {camera_description(params)}.\n"
        f"Visual Style: {params.visual_style.value}.\n\n"
        "High fidelity, photorealistic, 8k, highly detailed, sharp focus, octane render."
    )
