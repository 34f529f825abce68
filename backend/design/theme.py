"""
Theme configuration document

A tenant's catalog theme is a nested document with four fixed sections:
colors, typography, header and banner. The serializers below define the
field set, the allowed values and the default of every field.

Two ways of turning an incoming document into a complete one:

- ThemeConfigSerializer: strict, used when saving. Invalid values are
  rejected; missing fields and sections get their defaults.
- merge_theme_config: lenient, used when loading a stored document or a
  preview message. Present valid fields are kept, missing or invalid ones
  fall back to their default, field by field.
"""
import copy
import logging

from rest_framework import serializers

logger = logging.getLogger(__name__)

HEX_COLOR_REGEX = r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$'

THEME_SECTIONS = ('colors', 'typography', 'header', 'banner')

BUTTON_STYLE_CHOICES = ('filled', 'outlined', 'ghost')
HEADER_STYLE_CHOICES = ('simple', 'centered', 'minimal')
MENU_POSITION_CHOICES = ('center', 'left', 'right')
HEADER_HEIGHT_CHOICES = ('small', 'normal', 'large')
BANNER_TYPE_CHOICES = ('image', 'carousel')
TEXT_POSITION_CHOICES = ('left', 'center', 'right')
BANNER_HEIGHT_CHOICES = ('small', 'medium', 'large', 'full')


def color_field(default):
    return serializers.RegexField(HEX_COLOR_REGEX, default=default)


class ThemeColorsSerializer(serializers.Serializer):
    primary = color_field('#0f172a')
    secondary = color_field('#64748b')
    background = color_field('#ffffff')
    cardBackground = color_field('#ffffff')
    textPrimary = color_field('#020817')
    textSecondary = color_field('#64748b')


class ThemeTypographySerializer(serializers.Serializer):
    fontHeading = serializers.CharField(max_length=100, default='Inter')
    fontBody = serializers.CharField(max_length=100, default='Inter')
    # CSS length token, e.g. "0.5rem" or "8px"
    borderRadius = serializers.CharField(max_length=20, default='0.5rem')
    buttonStyle = serializers.ChoiceField(choices=BUTTON_STYLE_CHOICES, default='filled')


class ThemeHeaderSerializer(serializers.Serializer):
    style = serializers.ChoiceField(choices=HEADER_STYLE_CHOICES, default='simple')
    backgroundColor = color_field('#ffffff')
    textColor = color_field('#020817')
    showSearch = serializers.BooleanField(default=True)
    showPromo = serializers.BooleanField(default=True)
    menuPosition = serializers.ChoiceField(choices=MENU_POSITION_CHOICES, default='center')
    height = serializers.ChoiceField(choices=HEADER_HEIGHT_CHOICES, default='normal')
    shadow = serializers.BooleanField(default=True)


class ThemeBannerSerializer(serializers.Serializer):
    isActive = serializers.BooleanField(default=True)
    type = serializers.ChoiceField(choices=BANNER_TYPE_CHOICES, default='image')
    images = serializers.ListField(child=serializers.CharField(max_length=500), default=list)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    subtitle = serializers.CharField(max_length=300, required=False, allow_blank=True)
    textColor = color_field('#ffffff')
    textPosition = serializers.ChoiceField(choices=TEXT_POSITION_CHOICES, default='center')
    overlayOpacity = serializers.IntegerField(min_value=0, max_value=100, default=50)
    ctaText = serializers.CharField(max_length=100, required=False, allow_blank=True)
    height = serializers.ChoiceField(choices=BANNER_HEIGHT_CHOICES, default='medium')
    autoplay = serializers.BooleanField(default=True)


SECTION_SERIALIZERS = {
    'colors': ThemeColorsSerializer,
    'typography': ThemeTypographySerializer,
    'header': ThemeHeaderSerializer,
    'banner': ThemeBannerSerializer,
}


class ThemeConfigSerializer(serializers.Serializer):
    """Strict validation of a whole theme document; missing parts are defaulted"""
    colors = ThemeColorsSerializer()
    typography = ThemeTypographySerializer()
    header = ThemeHeaderSerializer()
    banner = ThemeBannerSerializer()

    def to_internal_value(self, data):
        if isinstance(data, dict):
            # An absent section is validated as {} so every field takes its default
            data = dict(data)
            for section in THEME_SECTIONS:
                if data.get(section) is None:
                    data[section] = {}
        return super().to_internal_value(data)


def to_plain(value):
    """Convert serializer output (OrderedDict/ReturnDict) into plain dicts and lists"""
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def _section_defaults(section):
    defaults = {}
    for name, field in SECTION_SERIALIZERS[section]().fields.items():
        if field.default is serializers.empty:
            continue
        defaults[name] = field.get_default()
    return defaults


def get_default_theme_config():
    """A fresh copy of the default document"""
    return {section: _section_defaults(section) for section in THEME_SECTIONS}


def merge_theme_config(config):
    """
    Merge a possibly partial document with the defaults, field by field.

    Never discards a present valid field. Unknown keys are dropped, invalid
    values are replaced by the field default and logged. The input is not
    modified.
    """
    merged = get_default_theme_config()
    if not isinstance(config, dict):
        if config:
            logger.warning(f"Ignoring theme config of type {type(config).__name__}")
        return merged

    for section in THEME_SECTIONS:
        values = config.get(section)
        if values is None:
            continue
        if not isinstance(values, dict):
            logger.warning(f"Ignoring theme section '{section}': expected an object")
            continue

        fields = SECTION_SERIALIZERS[section]().fields
        for name, field in fields.items():
            if name not in values:
                continue
            try:
                merged[section][name] = to_plain(field.run_validation(values[name]))
            except serializers.ValidationError as e:
                logger.warning(f"Invalid theme value {section}.{name}={values[name]!r}, using default: {e.detail}")
    return merged


def validate_theme_config(config):
    """
    Strictly validate a document. Returns the complete document.

    Raises:
        rest_framework.serializers.ValidationError
    """
    serializer = ThemeConfigSerializer(data=config)
    serializer.is_valid(raise_exception=True)
    return to_plain(serializer.validated_data)


def apply_theme_change(config, section, key, value):
    """
    Return a new document with one field changed; the input is left untouched.

    Raises:
        KeyError: unknown section or field
        rest_framework.serializers.ValidationError: value not allowed for the field
    """
    if section not in SECTION_SERIALIZERS:
        raise KeyError(f"Unknown theme section: {section}")
    fields = SECTION_SERIALIZERS[section]().fields
    if key not in fields:
        raise KeyError(f"Unknown theme field: {section}.{key}")

    validated = to_plain(fields[key].run_validation(value))

    new_config = copy.deepcopy(config)
    new_config.setdefault(section, {})
    new_config[section][key] = validated
    return new_config
