"""
Live theme synchronization between the theme editor and the catalog preview

The editor keeps the working document in memory. Every field edit produces a
new document and broadcasts it whole over a ThemeChannel; the preview merges
what it receives and re-derives its CSS variables and fonts. Since every
message carries the full document, delivery order of intermediate messages
does not matter: the last one wins. Nothing reaches the backend until the
editor saves explicitly.
"""
import copy
import logging
import time

from django.conf import settings
from rest_framework import serializers

from .client import ThemeApiError
from .css import FontLoader, theme_to_css_variables
from .theme import apply_theme_change, get_default_theme_config, merge_theme_config, validate_theme_config

logger = logging.getLogger(__name__)

THEME_UPDATE = 'THEME_UPDATE'


class ThemeMessageError(ValueError):
    """Message rejected by the channel"""


def build_theme_message(config):
    return {'type': THEME_UPDATE, 'payload': copy.deepcopy(config)}


def parse_theme_message(message):
    """Return the validated payload of a THEME_UPDATE message"""
    if not isinstance(message, dict) or message.get('type') != THEME_UPDATE:
        raise ThemeMessageError('Unsupported message type')

    payload = message.get('payload')
    if not isinstance(payload, dict):
        raise ThemeMessageError('Message payload must be a theme document')

    try:
        return validate_theme_config(payload)
    except serializers.ValidationError as e:
        raise ThemeMessageError(f"Invalid theme payload: {e.detail}") from e


class ThemeChannel:
    """
    Typed channel from the editor to preview surfaces.

    Only messages from allowed origins whose payload validates are delivered.
    Delivery is fire-and-forget: there is no acknowledgement and a failing
    subscriber never affects the sender.
    """

    def __init__(self, allowed_origins=None):
        if allowed_origins is None:
            allowed_origins = getattr(settings, 'CATALOG_ALLOWED_ORIGINS', [])
        self.allowed_origins = set(allowed_origins)
        self._subscribers = []

    def subscribe(self, handler):
        self._subscribers.append(handler)

    def unsubscribe(self, handler):
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def post(self, message, origin):
        """Returns True when the message was delivered"""
        if origin not in self.allowed_origins:
            logger.warning(f"Dropped theme message from disallowed origin {origin!r}")
            return False

        try:
            payload = parse_theme_message(message)
        except ThemeMessageError as e:
            logger.warning(f"Dropped theme message from {origin}: {str(e)}")
            return False

        for handler in list(self._subscribers):
            try:
                handler(copy.deepcopy(payload))
            except Exception as e:
                logger.error(f"Theme subscriber {handler!r} failed: {str(e)}", exc_info=True)
        return True


class SaveStatus:
    IDLE = 'idle'
    SUCCESS = 'success'
    ERROR = 'error'


class SaveStatusTracker:
    """
    idle -> success | error on a save attempt.

    success goes back to idle after reset_after seconds; error stays until
    the next edit or save attempt.
    """

    def __init__(self, reset_after=None, clock=None):
        if reset_after is None:
            reset_after = getattr(settings, 'THEME_SAVE_STATUS_RESET_SECONDS', 3)
        self.reset_after = reset_after
        self._clock = clock or time.monotonic
        self._status = SaveStatus.IDLE
        self._changed_at = None

    @property
    def status(self):
        if self._status == SaveStatus.SUCCESS and self._clock() - self._changed_at >= self.reset_after:
            self._set(SaveStatus.IDLE)
        return self._status

    def _set(self, status):
        self._status = status
        self._changed_at = self._clock()

    def mark_success(self):
        self._set(SaveStatus.SUCCESS)

    def mark_error(self):
        self._set(SaveStatus.ERROR)

    def reset(self):
        self._set(SaveStatus.IDLE)


class ThemeEditor:
    """In-memory working copy of a store theme, broadcast on every edit"""

    def __init__(self, client, channel, origin, status_tracker=None):
        self.client = client
        self.channel = channel
        self.origin = origin
        self.config = get_default_theme_config()
        self.save_status = status_tracker or SaveStatusTracker()
        self.is_saving = False

    @property
    def status(self):
        return self.save_status.status

    def load(self):
        """Fetch the stored document; on failure the defaults stay in place"""
        try:
            stored = self.client.fetch_theme()
        except ThemeApiError as e:
            logger.error(f"Failed to fetch theme config: {str(e)}")
            return self.config
        self.config = merge_theme_config(stored)
        return self.config

    def update(self, section, key, value):
        """
        Apply one field edit and broadcast the whole new document.

        An invalid value is rejected: the working document stays as it was
        and nothing is broadcast.
        """
        try:
            config = apply_theme_change(self.config, section, key, value)
        except serializers.ValidationError as e:
            logger.warning(f"Rejected theme edit {section}.{key}={value!r}: {e.detail}")
            return self.config
        self.config = config
        self.channel.post(build_theme_message(self.config), origin=self.origin)
        self.save_status.reset()
        return self.config

    def save(self):
        """Persist the working document; returns True on success"""
        self.save_status.reset()
        self.is_saving = True
        try:
            self.client.save_theme(self.config)
        except ThemeApiError as e:
            logger.error(f"Theme save failed: {str(e)}")
            self.save_status.mark_error()
            return False
        finally:
            self.is_saving = False
        self.save_status.mark_success()
        return True


class ThemePreview:
    """Catalog preview surface: applies received documents and derives presentation"""

    def __init__(self, channel=None, initial_config=None, font_loader=None):
        self.config = merge_theme_config(initial_config)
        self.font_loader = font_loader or FontLoader()
        self.css_variables = {}
        self._apply()
        if channel is not None:
            channel.subscribe(self.receive)

    def load(self, client, slug):
        """Fetch the published theme of a store; on failure keep the current one"""
        try:
            theme = client.fetch_catalog_theme(slug)
        except ThemeApiError as e:
            logger.error(f"Failed to fetch catalog theme for {slug}: {str(e)}")
            return self.config
        self.receive(theme)
        return self.config

    def receive(self, payload):
        self.config = merge_theme_config(payload)
        self._apply()

    def _apply(self):
        self.css_variables = theme_to_css_variables(self.config)
        typography = self.config['typography']
        self.font_loader.load(typography.get('fontHeading'))
        self.font_loader.load(typography.get('fontBody'))

    @property
    def font_links(self):
        return self.font_loader.links()
