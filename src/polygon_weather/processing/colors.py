"""
Colour helpers for rendering polygons and their labels.
"""


def _parse_hex(hex_color: str):
    hex_color = hex_color.lstrip("#")
    if len(hex_color) != 6:
        raise ValueError(f"Expected a #rrggbb colour, got {hex_color!r}")
    return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))


def hex_to_hsl(hex_color: str) -> str:
    """
    Convert a hex colour to an HSL string.

    Args:
        hex_color: Colour such as '#3b82f6'

    Returns:
        String 'H S% L%' with integer components, e.g. '217 91% 60%'
    """
    r, g, b = (channel / 255 for channel in _parse_hex(hex_color))
    max_c = max(r, g, b)
    min_c = min(r, g, b)
    lightness = (max_c + min_c) / 2

    if max_c == min_c:
        hue = saturation = 0.0  # achromatic
    else:
        delta = max_c - min_c
        if lightness > 0.5:
            saturation = delta / (2 - max_c - min_c)
        else:
            saturation = delta / (max_c + min_c)

        if max_c == r:
            hue = (g - b) / delta + (6 if g < b else 0)
        elif max_c == g:
            hue = (b - r) / delta + 2
        else:
            hue = (r - g) / delta + 4
        hue /= 6

    return f"{round(hue * 360)} {round(saturation * 100)}% {round(lightness * 100)}%"


def contrast_color(hex_color: str) -> str:
    """Get black or white, whichever reads better on the given background."""
    r, g, b = _parse_hex(hex_color)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000000" if luminance > 0.5 else "#ffffff"
