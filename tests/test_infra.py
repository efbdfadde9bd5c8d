"""
Tests for the infrastructure clients.

Tests cover:
- HttpClient against a mocked requests Session
- ExecClient running real (trivial) processes
- FileStore persistence
- CtanApi lookups
"""

import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

from tlsetup.ctan.api import CtanApi
from tlsetup.infra.exec_client import ExecClient, ExecError, ExecResult
from tlsetup.infra.file_store import FileStore
from tlsetup.infra.http_client import HttpClient


class TestHttpClient(unittest.TestCase):

    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.http = HttpClient(timeout=5, session=self.session)

    def test_user_agent(self):
        self.assertEqual(self.session.headers['User-Agent'], 'tlsetup')

    def test_head_does_not_follow_redirects(self):
        self.http.head('https://mirrors.ctan.org/')
        self.session.head.assert_called_once_with(
            'https://mirrors.ctan.org/', allow_redirects=False, timeout=5)

    def test_get_headers_lowercases(self):
        response = self.session.head.return_value
        response.headers = {'Last-Modified': 'Sat, 01 Mar 2025 00:00:00 GMT'}

        headers = self.http.get_headers('https://example.com/TEXLIVE_2025')
        self.assertEqual(headers, {'last-modified': 'Sat, 01 Mar 2025 00:00:00 GMT'})
        response.raise_for_status.assert_called_once()

    def test_get_headers_error_status(self):
        self.session.head.return_value.raise_for_status.side_effect = requests.HTTPError('404')
        with self.assertRaises(requests.HTTPError):
            self.http.get_headers('https://example.com/missing')

    def test_get_json(self):
        self.session.get.return_value.json.return_value = {'version': {'number': '2026'}}
        self.assertEqual(self.http.get_json('https://ctan.org/json/2.0/pkg/texlive'),
                         {'version': {'number': '2026'}})

    def test_download(self):
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir)
        response = self.session.get.return_value.__enter__.return_value
        response.raw = io.BytesIO(b'archive bytes')

        path = self.http.download('https://example.com/a.tar.gz', Path(temp_dir) / 'sub' / 'a.tar.gz')
        self.assertEqual(path.read_bytes(), b'archive bytes')


class TestExecClient(unittest.TestCase):

    def test_run(self):
        result = ExecClient().run(sys.executable, ['-c', 'print("hello")'])
        self.assertTrue(result.ok)
        self.assertEqual(result.stdout.strip(), 'hello')
        self.assertEqual(result.args, ('-c', 'print("hello")'))

    def test_failure_raises(self):
        with self.assertRaises(ExecError) as ctx:
            ExecClient().run(sys.executable, ['-c', 'import sys; sys.stderr.write("bad"); sys.exit(3)'])
        self.assertEqual(ctx.exception.exit_code, 3)
        self.assertEqual(ctx.exception.stderr, 'bad')

    def test_failure_without_check(self):
        result = ExecClient().run(sys.executable, ['-c', 'raise SystemExit(2)'], check=False)
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_code, 2)

    def test_env(self):
        env = dict(os.environ, TLSETUP_TEST_VALUE='42')
        result = ExecClient().run(
            sys.executable, ['-c', 'import os; print(os.environ["TLSETUP_TEST_VALUE"])'], env=env)
        self.assertEqual(result.stdout.strip(), '42')

    def test_result_check(self):
        self.assertTrue(ExecResult('x', (), 0).check().ok)
        with self.assertRaises(ExecError):
            ExecResult('x', (), 1).check()


class TestFileStore(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = Path(self.temp_dir) / 'nested' / 'state.json'

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_set_get(self):
        store = FileStore(self.path)
        store.set('cache', {'key': 'k'})

        self.assertEqual(store.get('cache'), {'key': 'k'})
        self.assertIn('cache', store)
        with open(self.path) as f:
            self.assertEqual(json.load(f), {'cache': {'key': 'k'}})

    def test_persists_across_instances(self):
        FileStore(self.path).set('cache', {'key': 'k'})
        self.assertEqual(FileStore(self.path).get('cache'), {'key': 'k'})

    def test_delete(self):
        store = FileStore(self.path)
        store.set('cache', 1)
        self.assertTrue(store.delete('cache'))
        self.assertFalse(store.delete('cache'))
        self.assertIsNone(FileStore(self.path).get('cache'))

    def test_corrupt_file(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{broken')
        self.assertEqual(FileStore(self.path).read(), {})


class TestCtanApi(unittest.TestCase):

    def setUp(self):
        self.http = MagicMock()
        self.api = CtanApi(self.http, 'https://ctan.org/json/2.0/')

    def test_pkg(self):
        self.api.pkg('texlive')
        self.http.get_json.assert_called_once_with('https://ctan.org/json/2.0/pkg/texlive')

    def test_texlive_name(self):
        self.http.get_json.return_value = {'id': 'pgf', 'texlive': 'pgf'}
        self.assertEqual(self.api.texlive_name('pgf'), 'pgf')

    def test_texlive_name_missing(self):
        self.http.get_json.return_value = {'id': 'foo'}
        self.assertIsNone(self.api.texlive_name('foo'))

    def test_texlive_name_error(self):
        self.http.get_json.side_effect = requests.HTTPError('404')
        self.assertIsNone(self.api.texlive_name('foo'))


if __name__ == '__main__':
    unittest.main()
