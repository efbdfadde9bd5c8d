"""
Tests for CTAN mirror resolution.

Tests cover:
- Following the redirect of mirrors.ctan.org
- Memoization and the master bypass
- Retrying unstable mirrors
- Wrapping transport failures
"""

import unittest
from unittest.mock import MagicMock

import requests

from tlsetup.config import get_default_config
from tlsetup.ctan.mirrors import MirrorResolver
from tlsetup.errors import MirrorResolutionError, NoSuitableMirrorError

GOOD_MIRROR = 'https://ftp.example.org/pub/ctan/'
UNSTABLE_MIRROR = 'https://mirrors.cicku.me/ctan/'


def redirect(location, status_code=302):
    response = MagicMock()
    response.status_code = status_code
    response.headers = {'Location': location} if location else {}
    return response


class TestMirrorResolver(unittest.TestCase):
    """Test MirrorResolver against a mocked HTTP client."""

    def setUp(self):
        self.http = MagicMock()
        self.sleep = MagicMock()
        self.resolver = MirrorResolver(self.http, sleep=self.sleep)

    def test_resolves_redirect(self):
        self.http.head.return_value = redirect(GOOD_MIRROR)

        self.assertEqual(self.resolver.resolve(), GOOD_MIRROR)
        self.http.head.assert_called_once_with('https://mirrors.ctan.org/', allow_redirects=False)
        self.assertEqual(self.resolver.resolved, GOOD_MIRROR)

    def test_memoized(self):
        self.http.head.return_value = redirect(GOOD_MIRROR)

        self.resolver.resolve()
        self.resolver.resolve()
        self.assertEqual(self.http.head.call_count, 1)

    def test_master_bypasses_probe(self):
        self.assertEqual(self.resolver.resolve(master=True), 'http://dante.ctan.org/tex-archive/')
        self.http.head.assert_not_called()
        self.assertIsNone(self.resolver.resolved)

    def test_master_does_not_replace_memoized_mirror(self):
        self.http.head.return_value = redirect(GOOD_MIRROR)
        self.resolver.resolve()
        self.resolver.resolve(master=True)
        self.assertEqual(self.resolver.resolve(), GOOD_MIRROR)

    def test_unstable_mirror_is_retried(self):
        self.http.head.side_effect = [redirect(UNSTABLE_MIRROR), redirect(GOOD_MIRROR)]

        self.assertEqual(self.resolver.resolve(), GOOD_MIRROR)
        self.assertEqual(self.http.head.call_count, 2)
        self.sleep.assert_called_once_with(0.5)

    def test_unstable_match_is_case_insensitive(self):
        self.assertTrue(self.resolver.is_unstable('https://MIRRORS.CICKU.ME/ctan/'))
        self.assertFalse(self.resolver.is_unstable(GOOD_MIRROR))

    def test_exhausted_tries(self):
        resolver = MirrorResolver(self.http, max_tries=3, sleep=self.sleep)
        self.http.head.return_value = redirect(UNSTABLE_MIRROR)

        with self.assertRaises(NoSuitableMirrorError):
            resolver.resolve()
        self.assertEqual(self.http.head.call_count, 3)
        self.assertEqual(self.sleep.call_count, 3)
        self.assertIsNone(resolver.resolved)

    def test_transport_error_is_wrapped(self):
        error = requests.ConnectionError('connection refused')
        self.http.head.side_effect = error

        with self.assertRaises(MirrorResolutionError) as ctx:
            self.resolver.resolve()
        self.assertNotIsInstance(ctx.exception, NoSuitableMirrorError)
        self.assertIs(ctx.exception.__cause__, error)
        self.assertEqual(self.http.head.call_count, 1)

    def test_non_redirect_status(self):
        self.http.head.return_value = redirect(None, status_code=200)

        with self.assertRaises(MirrorResolutionError) as ctx:
            self.resolver.resolve()
        self.assertNotIsInstance(ctx.exception, NoSuitableMirrorError)
        self.assertIn('200', str(ctx.exception.__cause__))

    def test_missing_location(self):
        self.http.head.return_value = redirect(None)

        with self.assertRaises(MirrorResolutionError):
            self.resolver.resolve()

    def test_override_and_reset(self):
        self.resolver.override(GOOD_MIRROR)
        self.assertEqual(self.resolver.resolve(), GOOD_MIRROR)
        self.http.head.assert_not_called()

        self.resolver.reset()
        self.assertIsNone(self.resolver.resolved)


class TestMirrorResolverConfig(unittest.TestCase):
    """Test building a resolver from configuration."""

    def test_from_config(self):
        config = get_default_config()
        config['ctan']['max_tries'] = 3
        config['ctan']['unstable_mirrors'] = 'foo, bar'

        resolver = MirrorResolver.from_config(config, MagicMock())
        self.assertEqual(resolver.max_tries, 3)
        self.assertEqual(resolver.unstable_mirrors, ['foo', 'bar'])
        self.assertTrue(resolver.is_unstable('https://bar.example.com/'))

    def test_empty_unstable_list(self):
        resolver = MirrorResolver(MagicMock(), unstable_mirrors=[])
        self.assertFalse(resolver.is_unstable(UNSTABLE_MIRROR))


if __name__ == '__main__':
    unittest.main()
