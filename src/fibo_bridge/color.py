"""Color science for stage lights: color temperature and gels."""

import math
from typing import NamedTuple

from .models import GEL_PRESETS


class RGB(NamedTuple):
    """Linear color with channels in [0, 1]."""

    r: float
    g: float
    b: float


WHITE = RGB(1.0, 1.0, 1.0)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def kelvin_to_color(temp_kelvin: float) -> RGB:
    """Convert a color temperature to a normalized RGB tint.

    Uses Tanner Helland's curve fit of the black-body locus.

    Args:
        temp_kelvin: Temperature in Kelvin, between 1000 and 40000.

    Returns:
        RGB: The tint, each channel clamped to [0, 1].

    Raises:
        ValueError: If the temperature is outside the fitted range.

    """
    if not 1000 <= temp_kelvin <= 40000:
        msg = f"Color temperature {temp_kelvin}K is outside 1000-40000K"
        raise ValueError(msg)

    t = temp_kelvin / 100

    if t <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(t) - 161.1195681661
    else:
        red = 329.698727446 * math.pow(t - 60, -0.1332047592)
        green = 288.1221695283 * math.pow(t - 60, -0.0755148492)

    if t >= 66:
        blue = 255.0
    elif t <= 19:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(t - 10) - 305.0447927307

    return RGB(
        _clamp(red, 0, 255) / 255,
        _clamp(green, 0, 255) / 255,
        _clamp(blue, 0, 255) / 255,
    )


def blend_gel(temp_color: RGB, gel_color: RGB) -> RGB:
    """Filter a white-balanced light through a gel.

    The temperature tint comes first and the gel multiplies over it, so a
    neutral gel leaves the tint untouched.
    """
    return RGB(
        temp_color[0] * gel_color[0],
        temp_color[1] * gel_color[1],
        temp_color[2] * gel_color[2],
    )


def hex_to_rgb(value: str) -> RGB:
    """Parse a ``#rrggbb`` swatch."""
    digits = value.lstrip("#")
    if len(digits) != 6:
        msg = f"Invalid color: {value!r}"
        raise ValueError(msg)
    return RGB(*(int(digits[i : i + 2], 16) / 255 for i in (0, 2, 4)))


def rgb_to_hex(color: RGB) -> str:
    return "#" + "".join(f"{round(_clamp(c, 0, 1) * 255):02x}" for c in color)


def light_color(temp_kelvin: float, gel: str) -> RGB:
    """Final color of a light with the given temperature and gel swatch."""
    return blend_gel(kelvin_to_color(temp_kelvin), hex_to_rgb(gel))


def temperature_description(kelvin: float) -> str:
    if kelvin < 3000:
        return "Warm Candlelight"
    if kelvin < 4500:
        return "Warm White"
    if kelvin < 6000:
        return "Neutral Daylight"
    return "Cool Blue"


def gel_name(value: str) -> str:
    """Name of the gel preset matching a swatch, or "Custom Color"."""
    for preset in GEL_PRESETS:
        if preset.hex.lower() == value.lower():
            return preset.name
    return "Custom Color"


# Swatches shown next to the temperature slider
KELVIN_COLORS = {
    2000: "#ff8912",  # candle
    3200: "#ffaa5e",  # tungsten
    4500: "#fff3ef",  # fluorescent
    5600: "#ffffff",  # daylight
    6500: "#f0f4ff",  # overcast
    8000: "#dbeaff",  # shade
    10000: "#ccdbff",  # blue sky
}


def kelvin_swatch(kelvin: float) -> str:
    """Rough swatch for slider display."""
    if kelvin < 4000:
        return KELVIN_COLORS[3200]
    if kelvin < 6000:
        return KELVIN_COLORS[5600]
    return KELVIN_COLORS[10000]
