"""
Presentational values derived from a theme document

Colors become "H S% L%" triples for the catalog's design tokens, fonts
become Google Fonts stylesheet links, and the whole set can be rendered as a
:root CSS rule.
"""
import colorsys
import math
import re

from django.conf import settings

HEX_COLOR_PATTERN = re.compile(r'^#?([A-Fa-f0-9]{3}|[A-Fa-f0-9]{6})$')
GOOGLE_FONTS_URL = 'https://fonts.googleapis.com/css2?family={family}:wght@300;400;500;600;700&display=swap'
FONT_FALLBACK_STACK = 'system-ui, sans-serif'

# Theme color role -> design token names (raw HSL token, hsl() token)
COLOR_TOKENS = (
    ('primary', '--primary', '--color-primary'),
    ('secondary', '--secondary', '--color-secondary'),
    ('background', '--background', '--color-background'),
    ('cardBackground', '--card', '--color-card'),
    ('textPrimary', '--foreground', '--color-foreground'),
    ('textSecondary', '--muted-foreground', '--color-muted-foreground'),
)


def is_valid_hex_color(color):
    return bool(color) and bool(HEX_COLOR_PATTERN.match(color))


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def hex_to_hsl(hex_color):
    """
    Convert "#rrggbb" (or "#rgb") to "H S% L%" with integer components.

    >>> hex_to_hsl('#ffffff')
    '0 0% 100%'
    """
    match = HEX_COLOR_PATTERN.match(hex_color or '')
    if not match:
        raise ValueError(f"Invalid hex color: {hex_color!r}")

    digits = match.group(1)
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)

    red, green, blue = (int(digits[i:i + 2], 16) / 255 for i in (0, 2, 4))
    hue, lightness, saturation = colorsys.rgb_to_hls(red, green, blue)
    return f"{_round_half_up(hue * 360)} {_round_half_up(saturation * 100)}% {_round_half_up(lightness * 100)}%"


def font_stylesheet_id(font_name):
    """Deterministic element id for a font stylesheet, e.g. google-font-open-sans"""
    return 'google-font-' + re.sub(r'\s+', '-', font_name.strip().lower())


def font_stylesheet_url(font_name):
    return GOOGLE_FONTS_URL.format(family=re.sub(r'\s+', '+', font_name.strip()))


def font_family_value(font_name):
    return f"'{font_name}', {FONT_FALLBACK_STACK}"


class FontLoader:
    """
    Tracks the font stylesheets injected into a page.

    The default family ships with the page and is never injected; every other
    family is injected once, keyed by font_stylesheet_id.
    """

    def __init__(self, default_font=None):
        self.default_font = default_font or getattr(settings, 'THEME_DEFAULT_FONT', 'Inter')
        self.stylesheets = {}

    def load(self, font_name):
        """Returns True when a new stylesheet was injected"""
        if not font_name or font_name == self.default_font:
            return False
        stylesheet_id = font_stylesheet_id(font_name)
        if stylesheet_id in self.stylesheets:
            return False
        self.stylesheets[stylesheet_id] = font_stylesheet_url(font_name)
        return True

    def links(self):
        return [{'id': key, 'rel': 'stylesheet', 'href': href} for key, href in self.stylesheets.items()]


def theme_to_css_variables(config):
    """CSS custom properties for a complete theme document"""
    variables = {}
    colors = config.get('colors') or {}
    for role, token, color_token in COLOR_TOKENS:
        value = colors.get(role)
        if not is_valid_hex_color(value):
            continue
        hsl = hex_to_hsl(value)
        variables[token] = hsl
        variables[color_token] = f"hsl({hsl})"

    typography = config.get('typography') or {}
    if typography.get('borderRadius'):
        variables['--radius'] = typography['borderRadius']
    if typography.get('fontHeading'):
        variables['--font-heading'] = font_family_value(typography['fontHeading'])
    if typography.get('fontBody'):
        variables['--font-sans'] = font_family_value(typography['fontBody'])
    return variables


def css_variables_to_string(variables):
    return ' '.join(f"{key}: {value};" for key, value in variables.items())


def generate_root_css(config):
    return f":root {{ {css_variables_to_string(theme_to_css_variables(config))} }}"
