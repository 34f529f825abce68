"""
Tests for the theme document, CSS derivation, live sync and the theme API
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch
import requests
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import serializers, status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.design.client import ThemeApiClient, ThemeApiError
from backend.design.css import (
    FontLoader, font_stylesheet_id, font_stylesheet_url, generate_root_css, hex_to_hsl, theme_to_css_variables,
)
from backend.design.sync import (
    SaveStatus, SaveStatusTracker, ThemeChannel, ThemeEditor, ThemePreview, build_theme_message,
    parse_theme_message, ThemeMessageError,
)
from backend.design.theme import (
    apply_theme_change, get_default_theme_config, merge_theme_config, validate_theme_config,
)

EDITOR_ORIGIN = 'http://admin.test'


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ThemeDocumentTests(SimpleTestCase):

    def test_defaults_have_every_section(self):
        config = get_default_theme_config()
        self.assertEqual(set(config), {'colors', 'typography', 'header', 'banner'})
        self.assertEqual(config['colors']['primary'], '#0f172a')
        self.assertEqual(config['typography']['fontBody'], 'Inter')
        self.assertEqual(config['header']['menuPosition'], 'center')
        self.assertEqual(config['banner']['overlayOpacity'], 50)
        self.assertEqual(config['banner']['images'], [])

    def test_defaults_are_fresh_copies(self):
        config = get_default_theme_config()
        config['banner']['images'].append('x.png')
        self.assertEqual(get_default_theme_config()['banner']['images'], [])

    def test_partial_document_merges_to_full(self):
        merged = merge_theme_config({'colors': {'primary': '#ff0000'}})
        expected = get_default_theme_config()
        expected['colors']['primary'] = '#ff0000'
        self.assertEqual(merged, expected)

    def test_merge_keeps_valid_fields_next_to_invalid_ones(self):
        merged = merge_theme_config({
            'colors': {'primary': 'red', 'secondary': '#123456'},
            'banner': {'overlayOpacity': 150, 'title': 'Liquidação'},
        })
        self.assertEqual(merged['colors']['primary'], '#0f172a')
        self.assertEqual(merged['colors']['secondary'], '#123456')
        self.assertEqual(merged['banner']['overlayOpacity'], 50)
        self.assertEqual(merged['banner']['title'], 'Liquidação')

    def test_merge_of_nothing(self):
        self.assertEqual(merge_theme_config(None), get_default_theme_config())
        self.assertEqual(merge_theme_config({}), get_default_theme_config())
        self.assertEqual(merge_theme_config({'colors': 'blue'}), get_default_theme_config())

    def test_merge_does_not_modify_input(self):
        partial = {'colors': {'primary': '#ff0000'}}
        merge_theme_config(partial)
        self.assertEqual(partial, {'colors': {'primary': '#ff0000'}})

    def test_strict_validation_defaults_missing_parts(self):
        validated = validate_theme_config({'typography': {'fontHeading': 'Lora'}})
        self.assertEqual(validated['typography']['fontHeading'], 'Lora')
        self.assertEqual(validated['typography']['fontBody'], 'Inter')
        self.assertEqual(validated['header'], get_default_theme_config()['header'])

    def test_strict_validation_rejects_invalid_values(self):
        with self.assertRaises(serializers.ValidationError):
            validate_theme_config({'colors': {'primary': 'red'}})
        with self.assertRaises(serializers.ValidationError):
            validate_theme_config({'header': {'style': 'fancy'}})
        with self.assertRaises(serializers.ValidationError):
            validate_theme_config({'banner': {'overlayOpacity': -1}})

    def test_apply_change_returns_new_document(self):
        original = get_default_theme_config()
        changed = apply_theme_change(original, 'header', 'showSearch', False)
        self.assertFalse(changed['header']['showSearch'])
        self.assertTrue(original['header']['showSearch'])

    def test_apply_change_rejects_invalid_value(self):
        original = get_default_theme_config()
        with self.assertRaises(serializers.ValidationError):
            apply_theme_change(original, 'banner', 'overlayOpacity', 150)
        with self.assertRaises(serializers.ValidationError):
            apply_theme_change(original, 'colors', 'primary', '#ff')
        self.assertEqual(original, get_default_theme_config())

    def test_apply_change_stores_validated_value(self):
        changed = apply_theme_change(get_default_theme_config(), 'banner', 'overlayOpacity', '70')
        self.assertEqual(changed['banner']['overlayOpacity'], 70)

    def test_apply_change_rejects_unknown_field(self):
        with self.assertRaises(KeyError):
            apply_theme_change(get_default_theme_config(), 'footer', 'style', 'x')
        with self.assertRaises(KeyError):
            apply_theme_change(get_default_theme_config(), 'colors', 'accent', '#ffffff')


class CssTests(SimpleTestCase):

    def test_hex_to_hsl(self):
        self.assertEqual(hex_to_hsl('#ffffff'), '0 0% 100%')
        self.assertEqual(hex_to_hsl('#000000'), '0 0% 0%')
        self.assertEqual(hex_to_hsl('#0f172a'), '222 47% 11%')
        self.assertEqual(hex_to_hsl('#3b82f6'), '217 91% 60%')

    def test_hex_to_hsl_short_form(self):
        self.assertEqual(hex_to_hsl('#f00'), '0 100% 50%')

    def test_hex_to_hsl_invalid(self):
        with self.assertRaises(ValueError):
            hex_to_hsl('#12')
        with self.assertRaises(ValueError):
            hex_to_hsl('blue')

    def test_font_stylesheet(self):
        self.assertEqual(font_stylesheet_id('Open Sans'), 'google-font-open-sans')
        url = font_stylesheet_url('Open Sans')
        self.assertIn('family=Open+Sans:wght@300;400;500;600;700', url)
        self.assertTrue(url.startswith('https://fonts.googleapis.com/css2?'))

    def test_font_loader_skips_default_and_duplicates(self):
        loader = FontLoader(default_font='Inter')
        self.assertFalse(loader.load('Inter'))
        self.assertTrue(loader.load('Roboto'))
        self.assertFalse(loader.load('Roboto'))
        self.assertFalse(loader.load(''))
        self.assertEqual([link['id'] for link in loader.links()], ['google-font-roboto'])

    def test_css_variables_for_defaults(self):
        variables = theme_to_css_variables(get_default_theme_config())
        self.assertEqual(variables['--primary'], '222 47% 11%')
        self.assertEqual(variables['--color-primary'], 'hsl(222 47% 11%)')
        self.assertEqual(variables['--background'], '0 0% 100%')
        self.assertEqual(variables['--radius'], '0.5rem')
        self.assertEqual(variables['--font-sans'], "'Inter', system-ui, sans-serif")
        self.assertIn('--muted-foreground', variables)
        self.assertIn('--card', variables)

    def test_root_css(self):
        css = generate_root_css(get_default_theme_config())
        self.assertTrue(css.startswith(':root {'))
        self.assertIn('--primary: 222 47% 11%;', css)


class ThemeChannelTests(SimpleTestCase):

    def setUp(self):
        self.channel = ThemeChannel(allowed_origins=[EDITOR_ORIGIN])
        self.received = []
        self.channel.subscribe(self.received.append)

    def test_delivers_valid_message(self):
        config = apply_theme_change(get_default_theme_config(), 'colors', 'primary', '#ff0000')
        self.assertTrue(self.channel.post(build_theme_message(config), origin=EDITOR_ORIGIN))
        self.assertEqual(self.received, [config])

    def test_drops_disallowed_origin(self):
        with self.assertLogs('backend.design.sync', level='WARNING'):
            delivered = self.channel.post(build_theme_message(get_default_theme_config()), origin='http://evil.test')
        self.assertFalse(delivered)
        self.assertEqual(self.received, [])

    def test_drops_wrong_message_type(self):
        with self.assertLogs('backend.design.sync', level='WARNING'):
            delivered = self.channel.post({'type': 'RELOAD', 'payload': {}}, origin=EDITOR_ORIGIN)
        self.assertFalse(delivered)
        self.assertEqual(self.received, [])

    def test_drops_invalid_payload(self):
        message = {'type': 'THEME_UPDATE', 'payload': {'colors': {'primary': 'not-a-color'}}}
        with self.assertLogs('backend.design.sync', level='WARNING'):
            self.assertFalse(self.channel.post(message, origin=EDITOR_ORIGIN))
        self.assertEqual(self.received, [])

    def test_parse_requires_document_payload(self):
        with self.assertRaises(ThemeMessageError):
            parse_theme_message({'type': 'THEME_UPDATE', 'payload': 'colors'})

    def test_failing_subscriber_does_not_block_others(self):
        channel = ThemeChannel(allowed_origins=[EDITOR_ORIGIN])
        received = []
        channel.subscribe(MagicMock(side_effect=RuntimeError('broken preview')))
        channel.subscribe(received.append)
        with self.assertLogs('backend.design.sync', level='ERROR'):
            self.assertTrue(channel.post(build_theme_message(get_default_theme_config()), origin=EDITOR_ORIGIN))
        self.assertEqual(len(received), 1)

    def test_unsubscribe(self):
        self.channel.unsubscribe(self.received.append)
        self.channel.post(build_theme_message(get_default_theme_config()), origin=EDITOR_ORIGIN)
        self.assertEqual(self.received, [])


class SaveStatusTests(SimpleTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.tracker = SaveStatusTracker(reset_after=3, clock=self.clock)

    def test_success_reverts_to_idle_after_three_seconds(self):
        self.assertEqual(self.tracker.status, SaveStatus.IDLE)
        self.tracker.mark_success()
        self.clock.advance(2.9)
        self.assertEqual(self.tracker.status, SaveStatus.SUCCESS)
        self.clock.advance(0.1)
        self.assertEqual(self.tracker.status, SaveStatus.IDLE)

    def test_error_does_not_revert(self):
        self.tracker.mark_error()
        self.clock.advance(60)
        self.assertEqual(self.tracker.status, SaveStatus.ERROR)
        self.tracker.reset()
        self.assertEqual(self.tracker.status, SaveStatus.IDLE)


class ThemeEditorTests(SimpleTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.fetch_theme.return_value = {}
        self.channel = ThemeChannel(allowed_origins=[EDITOR_ORIGIN])
        self.clock = FakeClock()
        self.editor = ThemeEditor(
            self.client, self.channel, EDITOR_ORIGIN,
            status_tracker=SaveStatusTracker(reset_after=3, clock=self.clock),
        )

    def test_load_merges_stored_document(self):
        self.client.fetch_theme.return_value = {'colors': {'primary': '#ff0000'}}
        config = self.editor.load()
        self.assertEqual(config['colors']['primary'], '#ff0000')
        self.assertEqual(config['typography']['fontHeading'], 'Inter')

    def test_load_failure_keeps_defaults(self):
        self.client.fetch_theme.side_effect = ThemeApiError('offline')
        with self.assertLogs('backend.design.sync', level='ERROR'):
            config = self.editor.load()
        self.assertEqual(config, get_default_theme_config())

    def test_edit_broadcasts_without_saving(self):
        preview = ThemePreview(channel=self.channel)
        self.editor.update('colors', 'primary', '#ff0000')
        self.assertEqual(preview.config['colors']['primary'], '#ff0000')
        self.assertEqual(preview.css_variables['--primary'], '0 100% 50%')
        self.client.save_theme.assert_not_called()

    def test_rapid_edits_converge(self):
        preview = ThemePreview(channel=self.channel)
        for opacity in range(0, 101, 5):
            self.editor.update('banner', 'overlayOpacity', opacity)
        self.editor.update('typography', 'fontHeading', 'Playfair Display')
        self.editor.update('banner', 'title', 'Nova coleção')
        self.assertEqual(preview.config, self.editor.config)

    def test_final_message_wins_in_any_order(self):
        snapshots = []
        for color in ('#111111', '#222222', '#333333'):
            snapshots.append(self.editor.update('colors', 'primary', color))
        final = snapshots[-1]

        preview = ThemePreview()
        for payload in (snapshots[1], snapshots[0], final):
            preview.receive(payload)
        self.assertEqual(preview.config, final)

    def test_save_success_then_idle(self):
        self.editor.update('colors', 'secondary', '#00ff00')
        self.assertTrue(self.editor.save())
        self.client.save_theme.assert_called_once_with(self.editor.config)
        self.assertEqual(self.editor.status, SaveStatus.SUCCESS)
        self.assertFalse(self.editor.is_saving)
        self.clock.advance(3)
        self.assertEqual(self.editor.status, SaveStatus.IDLE)

    def test_save_failure_is_error_until_next_edit(self):
        self.client.save_theme.side_effect = ThemeApiError('500')
        with self.assertLogs('backend.design.sync', level='ERROR'):
            self.assertFalse(self.editor.save())
        self.clock.advance(10)
        self.assertEqual(self.editor.status, SaveStatus.ERROR)
        self.editor.update('colors', 'primary', '#ff0000')
        self.assertEqual(self.editor.status, SaveStatus.IDLE)

    def test_edit_after_success_goes_idle(self):
        self.editor.save()
        self.editor.update('header', 'shadow', False)
        self.assertEqual(self.editor.status, SaveStatus.IDLE)


    def test_invalid_edit_does_not_block_later_edits(self):
        preview = ThemePreview(channel=self.channel)
        with self.assertLogs('backend.design.sync', level='WARNING'):
            self.editor.update('banner', 'overlayOpacity', 150)
        self.assertEqual(self.editor.config['banner']['overlayOpacity'], 50)

        self.editor.update('colors', 'primary', '#ff0000')
        self.editor.update('typography', 'fontHeading', 'Lora')
        self.assertEqual(preview.config['colors']['primary'], '#ff0000')
        self.assertEqual(preview.config['typography']['fontHeading'], 'Lora')
        self.assertEqual(preview.config, self.editor.config)


class ThemePreviewTests(SimpleTestCase):

    def test_loads_fonts_once(self):
        preview = ThemePreview(font_loader=FontLoader(default_font='Inter'))
        self.assertEqual(preview.font_links, [])

        config = get_default_theme_config()
        config['typography']['fontHeading'] = 'Playfair Display'
        preview.receive(config)
        preview.receive(config)
        self.assertEqual([link['id'] for link in preview.font_links], ['google-font-playfair-display'])
        self.assertEqual(preview.css_variables['--font-heading'], "'Playfair Display', system-ui, sans-serif")

    def test_load_from_catalog(self):
        client = MagicMock()
        client.fetch_catalog_theme.return_value = {'colors': {'primary': '#ffffff'}, 'name': 'Loja'}
        preview = ThemePreview()
        preview.load(client, 'loja')
        client.fetch_catalog_theme.assert_called_once_with('loja')
        self.assertEqual(preview.config['colors']['primary'], '#ffffff')
        self.assertNotIn('name', preview.config)


class ThemeApiClientTests(SimpleTestCase):

    def _response(self, body):
        response = MagicMock()
        response.json.return_value = body
        return response

    def test_bearer_token_and_fetch(self):
        client = ThemeApiClient('http://api.test/', access_token='abc')
        self.assertEqual(client.session.headers['Authorization'], 'Bearer abc')
        body = {'success': True, 'config': {'colors': {'primary': '#ff0000'}}, 'updatedAt': '2026-01-01T00:00:00Z'}
        with patch.object(requests.Session, 'request', return_value=self._response(body)) as request:
            config = client.fetch_theme()
        self.assertEqual(config, {'colors': {'primary': '#ff0000'}})
        request.assert_called_once_with('GET', 'http://api.test/api/v1/design/theme/', timeout=10)

    def test_save_sends_last_seen_timestamp(self):
        client = ThemeApiClient('http://api.test')
        client.last_updated_at = '2026-01-01T00:00:00Z'
        with patch.object(requests.Session, 'request', return_value=self._response({'success': True, 'updatedAt': 'later'})) as request:
            client.save_theme({'colors': {}})
        self.assertEqual(request.call_args.kwargs['json'], {'config': {'colors': {}}, 'baseUpdatedAt': '2026-01-01T00:00:00Z'})
        self.assertEqual(client.last_updated_at, 'later')

    def test_network_error_raises_theme_error(self):
        client = ThemeApiClient('http://api.test')
        with patch.object(requests.Session, 'request', side_effect=requests.exceptions.ConnectionError('down')):
            with self.assertRaises(ThemeApiError):
                client.fetch_theme()

    def test_http_error_raises_theme_error(self):
        client = ThemeApiClient('http://api.test')
        response = self._response({})
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('500 Server Error')
        with patch.object(requests.Session, 'request', return_value=response):
            with self.assertRaises(ThemeApiError):
                client.save_theme({})


class DesignThemeAPITests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store(slug='loja-tema')
        self.user = TestDataFactory.create_user(store=self.store, role='owner')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_empty_config(self):
        response = self.client.get('/api/v1/design/theme/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['config'], {})

    def test_put_requires_config(self):
        response = self.client.put('/api/v1/design/theme/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'config is required')

    def test_put_rejects_invalid_config(self):
        response = self.client.put('/api/v1/design/theme/', {'config': {'colors': {'primary': 'red'}}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid theme configuration')
        self.assertIn('colors', response.data['details'])
        self.store.refresh_from_db()
        self.assertEqual(self.store.catalog_config, {})

    def test_put_persists_complete_document(self):
        response = self.client.put('/api/v1/design/theme/', {
            'config': {'colors': {'primary': '#ff0000', 'secondary': '#00ff00'}, 'typography': {'borderRadius': '1rem'}},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])

        self.store.refresh_from_db()
        self.assertEqual(set(self.store.catalog_config), {'colors', 'typography', 'header', 'banner'})
        self.assertEqual(self.store.catalog_config['colors']['primary'], '#ff0000')
        self.assertEqual(self.store.primary_color, '#ff0000')
        self.assertEqual(self.store.secondary_color, '#00ff00')
        self.assertEqual(self.store.border_radius, '1rem')
        self.assertIsNotNone(self.store.catalog_config_updated_at)
        self.assertTrue(AuditLog.objects.filter(action='theme_update', store=self.store).exists())

    def test_stale_save_still_wins_with_warning(self):
        self.store.catalog_config = get_default_theme_config()
        self.store.catalog_config_updated_at = timezone.now()
        self.store.save()
        loaded_at = (self.store.catalog_config_updated_at - timedelta(minutes=5)).isoformat()

        with self.assertLogs('backend.design.views', level='WARNING'):
            response = self.client.put('/api/v1/design/theme/', {
                'config': {'colors': {'primary': '#abcdef'}},
                'baseUpdatedAt': loaded_at,
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.store.refresh_from_db()
        self.assertEqual(self.store.catalog_config['colors']['primary'], '#abcdef')

    def test_requires_auth(self):
        self.client.logout()
        response = self.client.get('/api/v1/design/theme/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CatalogThemeAPITests(TestCase):

    def setUp(self):
        self.store = TestDataFactory.create_store(name='Loja Verde', slug='loja-verde', primary_color='#00ff00')

    def test_unknown_store(self):
        response = self.client.get('/api/v1/catalog/nao-existe/theme/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'TENANT_NOT_FOUND')

    def test_legacy_fallback(self):
        response = self.client.get('/api/v1/catalog/loja-verde/theme/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['colors']['primary'], '#00ff00')
        self.assertFalse(data['banner']['isActive'])
        self.assertEqual(data['name'], 'Loja Verde')
        self.assertEqual(data['slug'], 'loja-verde')
        self.assertEqual(data['cssVariables']['--primary'], '120 100% 50%')
        self.assertEqual(response['Cache-Control'], 'public, s-maxage=60, stale-while-revalidate=300')

    def test_public_theme_ignores_stale_token(self):
        response = self.client.get('/api/v1/catalog/loja-verde/theme/', HTTP_AUTHORIZATION='Bearer expired.token.value')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['slug'], 'loja-verde')

    def test_stored_document_is_merged(self):
        self.store.catalog_config = {'colors': {'primary': '#ff0000'}, 'banner': {'title': 'Promo'}}
        self.store.save()
        data = self.client.get('/api/v1/catalog/loja-verde/theme/').data['data']
        self.assertEqual(data['colors']['primary'], '#ff0000')
        self.assertEqual(data['banner']['title'], 'Promo')
        self.assertTrue(data['banner']['isActive'])
        self.assertEqual(data['typography']['fontBody'], 'Inter')
