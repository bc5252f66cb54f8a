import re

FIVE_MINUTE_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)(?::\d{2})?$')
HEX_COLOR_PATTERN = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')

PALETTE_KEYS = (
    'accent',
    'accentSoft',
    'booleanYes',
    'booleanNo',
    'scaleLow',
    'scaleHigh',
    'cardBackground',
    'cardText',
    'countBackground',
    'countAccent',
)
CHART_STYLES = ('gradient', 'brush', 'solid')
DATE_FORMATS = ('mdy', 'dmy', 'ymd')
DISPLAY_OPTIONS = ('graph', 'list', 'grid', 'count')
ANSWER_TYPES = ('boolean', 'number', 'scale', 'text',
                'single_choice', 'multi_choice')

DEFAULT_CHART_PALETTE = {
    'accent': '#2f4a3d',
    'accentSoft': '#5f8b7a',
    'booleanYes': '#5ce695',
    'booleanNo': '#f98c80',
    'scaleLow': '#ffeacc',
    'scaleHigh': '#ff813d',
}
DEFAULT_CHART_STYLE = 'gradient'


class ValidationError(ValueError):
    def __init__(self, message, error_code=None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


def is_five_minute_increment(value):
    if not isinstance(value, str):
        return False
    match = FIVE_MINUTE_PATTERN.match(value)
    if not match:
        return False
    return int(match.group(2)) % 5 == 0


def normalize_hex_color(value):
    """'#ABC' -> '#aabbcc'. Returns None for anything that is not a hex color."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not HEX_COLOR_PATTERN.match(trimmed):
        return None
    raw = trimmed[1:]
    if len(raw) == 3:
        raw = ''.join(c * 2 for c in raw)
    return '#' + raw.lower()


def normalize_palette(palette):
    """Validates a chart palette, keeping only known keys.

    None clears the palette. Raises ValidationError on a non-object or a bad color.
    """
    if palette is None:
        return None
    if not isinstance(palette, dict):
        raise ValidationError(
            'chart_palette must be an object of hex colors.', 'chartPalette')

    normalized = {}
    for key in PALETTE_KEYS:
        if key not in palette:
            continue
        color = normalize_hex_color(palette[key])
        if color is None:
            raise ValidationError(
                f'Invalid color for {key}. Use a hex value like #336699.', 'chartPalette')
        normalized[key] = color
    return normalized


def filter_palette(palette):
    # lenient variant for per-question overrides: drop unknown keys and non-strings
    if not isinstance(palette, dict):
        return None
    return {k: palette[k] for k in PALETTE_KEYS if isinstance(palette.get(k), str)}


def merge_palette(palette):
    return {**DEFAULT_CHART_PALETTE, **(palette or {})}


def normalize_chart_style(value):
    return value if value in CHART_STYLES else DEFAULT_CHART_STYLE


def unique(values):
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def normalize_display_options(values):
    if not isinstance(values, list):
        return []
    return unique(v for v in values if v in DISPLAY_OPTIONS)
