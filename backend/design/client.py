"""
HTTP client for the theme endpoints, used by the editor and the preview
"""

import requests


THEME_PATH = '/api/v1/design/theme/'
CATALOG_THEME_PATH = '/api/v1/catalog/{slug}/theme/'


class ThemeApiError(Exception):
    """Theme fetch/save failed (network error, bad status or bad body)"""


class ThemeApiClient:
    """Talks to the theme API with a bearer token"""

    def __init__(self, base_url, access_token=None, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.last_updated_at = None
        self.session.headers.update({'Content-Type': 'application/json'})
        if access_token:
            self.session.headers.update({'Authorization': f'Bearer {access_token}'})

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ThemeApiError(f"{method} {url} failed: {str(e)}") from e
        except ValueError as e:
            raise ThemeApiError(f"{method} {url} returned an invalid body") from e

    def fetch_theme(self):
        """Stored theme document of the user's store; may be partial or empty"""
        data = self._request('GET', THEME_PATH)
        self.last_updated_at = data.get('updatedAt')
        return data.get('config') or {}

    def save_theme(self, config, base_updated_at=None):
        """
        Persist the whole document; returns the response body.

        base_updated_at defaults to the timestamp of the last fetch or save, so
        the server can tell when it overwrites someone else's changes.
        """
        body = {'config': config}
        base_updated_at = base_updated_at or self.last_updated_at
        if base_updated_at:
            body['baseUpdatedAt'] = base_updated_at
        data = self._request('PUT', THEME_PATH, json=body)
        self.last_updated_at = data.get('updatedAt')
        return data

    def fetch_catalog_theme(self, slug):
        """Public theme of a store by slug"""
        data = self._request('GET', CATALOG_THEME_PATH.format(slug=slug))
        return data.get('data') or {}
