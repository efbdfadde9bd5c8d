"""
Tests for setup input validation and defaults.

Tests cover:
- Repository URL normalization
- Release validation per platform
- Version detection from a repository
- Package collection from DEPENDS.txt text and files
- Adjustments for older releases
"""

import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from tlsetup.domain.release import Release
from tlsetup.domain.version import Version
from tlsetup.errors import UnsupportedVersionError
from tlsetup.releases import LatestRelease, ReleaseData
from tlsetup.services.setup_config import (
    SetupConfig,
    collect_packages,
    init_env,
    normalize_repository,
    validate_release,
)


def make_releases():
    return ReleaseData(LatestRelease(Release(Version(2026)), Release(Version(2027))))


class TestNormalizeRepository(unittest.TestCase):

    def test_trailing_slash(self):
        self.assertEqual(normalize_repository('https://example.com/tlnet'),
                         'https://example.com/tlnet/')

    def test_strips_tlpdb(self):
        self.assertEqual(normalize_repository('https://example.com/tlnet/tlpkg/texlive.tlpdb'),
                         'https://example.com/tlnet/')
        self.assertEqual(normalize_repository('http://example.com/tlnet/tlpkg/'),
                         'http://example.com/tlnet/')

    def test_strips_archive(self):
        self.assertEqual(normalize_repository('https://example.com/tlnet/archive/'),
                         'https://example.com/tlnet/')

    def test_root(self):
        self.assertEqual(normalize_repository('https://example.com'), 'https://example.com/')

    def test_rejects_other_schemes(self):
        for url in ('ftp://tug.org/texlive/', 'file:///srv/tlnet', 'not a url'):
            with self.assertRaises(ValueError):
                normalize_repository(url)


class TestValidateRelease(unittest.TestCase):

    def setUp(self):
        self.releases = make_releases()

    def test_valid(self):
        self.assertEqual(validate_release('2021', self.releases, 'linux', 'x86_64'), Version(2021))
        self.assertEqual(validate_release('2027', self.releases, 'linux', 'x86_64'), Version(2027))

    def test_rejected(self):
        cases = [
            ('2007', 'linux', 'x86_64'),
            ('2016', 'linux', 'aarch64'),
            ('2012', 'darwin', 'x86_64'),
            ('2028', 'linux', 'x86_64'),
            ('foo', 'linux', 'x86_64'),
        ]
        for version, platform, arch in cases:
            with self.subTest(version=version, platform=platform):
                with self.assertRaises(UnsupportedVersionError):
                    validate_release(version, self.releases, platform, arch)

    def test_unsupported_is_value_error(self):
        with self.assertRaises(ValueError):
            validate_release('2000', self.releases, 'linux', 'x86_64')


class TestInitEnv(unittest.TestCase):

    def test_defaults(self):
        env = init_env({})
        self.assertEqual(env['TEXLIVE_INSTALL_ENV_NOCHECK'], '1')
        self.assertEqual(env['TEXLIVE_INSTALL_NO_WELCOME'], '1')

    def test_existing_values_kept(self):
        env = init_env({'TEXLIVE_INSTALL_NO_WELCOME': '0'})
        self.assertEqual(env['TEXLIVE_INSTALL_NO_WELCOME'], '0')

    def test_system_trees_removed(self):
        with self.assertLogs('tlsetup', level='WARNING'):
            env = init_env({
                'TEXLIVE_INSTALL_TEXMFSYSVAR': '/x',
                'TEXLIVE_INSTALL_TEXMFLOCAL': '/y',
            })
        self.assertNotIn('TEXLIVE_INSTALL_TEXMFSYSVAR', env)
        self.assertEqual(env['TEXLIVE_INSTALL_TEXMFLOCAL'], '/y')


class TestCollectPackages(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_inline(self):
        self.assertEqual(collect_packages('hard hyperref amsmath\nsoft hyperref'),
                         ['amsmath', 'hyperref'])

    def test_files(self):
        os.makedirs(os.path.join(self.temp_dir, 'sub'))
        with open(os.path.join(self.temp_dir, 'DEPENDS.txt'), 'w') as f:
            f.write('package a\nhard geometry\n')
        with open(os.path.join(self.temp_dir, 'sub', 'DEPENDS.txt'), 'w') as f:
            f.write('xcolor\n')

        pattern = os.path.join(self.temp_dir, '**', 'DEPENDS.txt')
        self.assertEqual(collect_packages('amsmath', pattern), ['amsmath', 'geometry', 'xcolor'])

    def test_no_match(self):
        self.assertEqual(collect_packages(None, os.path.join(self.temp_dir, 'none.txt')), [])

    def test_nothing(self):
        self.assertEqual(collect_packages(), [])


class TestSetupConfigLoad(unittest.TestCase):

    def setUp(self):
        self.releases = make_releases()
        self.tlnet = MagicMock()
        self.tlnet.check_version_file.return_value = None
        self.env = {}

    def load(self, **inputs):
        return SetupConfig.load(self.releases, self.tlnet, env=self.env,
                                platform='linux', arch='x86_64', **inputs)

    def test_defaults(self):
        config = self.load()

        self.assertEqual(config.version, Version(2026))
        self.assertEqual(config.prefix, os.path.join(tempfile.gettempdir(), 'tlsetup'))
        self.assertIsNone(config.texdir)
        self.assertIsNone(config.repository)
        self.assertEqual(config.packages, [])
        self.assertTrue(config.cache)
        self.assertEqual(self.env['TEXLIVE_INSTALL_ENV_NOCHECK'], '1')

    def test_latest_keyword(self):
        self.assertEqual(self.load(version=' Latest ').version, Version(2026))

    def test_prefix_from_env(self):
        self.env['TEXLIVE_INSTALL_PREFIX'] = '/opt/texlive'
        self.assertEqual(self.load().prefix, '/opt/texlive')

    def test_older_release_adjustments(self):
        with self.assertLogs('tlsetup', level='WARNING'):
            config = self.load(version='2021', tlcontrib=True, update_all_packages=True)
        self.assertEqual(config.version, Version(2021))
        self.assertFalse(config.tlcontrib)
        self.assertFalse(config.update_all_packages)

    def test_latest_keeps_options(self):
        config = self.load(tlcontrib=True, update_all_packages=True)
        self.assertTrue(config.tlcontrib)
        self.assertTrue(config.update_all_packages)

    def test_version_from_historic_repository(self):
        config = self.load(
            repository='https://ftp.math.utah.edu/pub/tex/historic/systems/texlive/2019/tlnet-final')
        self.assertEqual(config.version, Version(2019))
        self.assertEqual(config.repository,
                         'https://ftp.math.utah.edu/pub/tex/historic/systems/texlive/2019/tlnet-final/')
        self.tlnet.check_version_file.assert_not_called()

    def test_version_from_version_file(self):
        self.tlnet.check_version_file.side_effect = (
            lambda repository, version: {} if version == Version(2027) else None
        )
        config = self.load(repository='https://example.com/tlpretest/')
        self.assertEqual(config.version, Version(2027))

    def test_version_from_install_tl(self):
        provider = MagicMock()
        provider.acquire.return_value.version = Version(2024)

        config = SetupConfig.load(self.releases, self.tlnet, provider, env=self.env,
                                  repository='https://example.com/tlnet/')
        self.assertEqual(config.version, Version(2024))
        provider.acquire.assert_called_once_with('https://example.com/tlnet/')

    def test_version_unknown_without_provider(self):
        with self.assertRaises(UnsupportedVersionError):
            self.load(repository='https://example.com/tlnet/')

    def test_repository_requires_2012(self):
        with self.assertRaises(ValueError):
            self.load(version='2011', repository='https://example.com/tlnet/')

    def test_invalid_version(self):
        with self.assertRaises(UnsupportedVersionError):
            self.load(version='2005')

    def test_packages(self):
        config = self.load(packages='hard amsmath\nsoft hyperref\n# comment')
        self.assertEqual(config.packages, ['amsmath', 'hyperref'])
        self.assertEqual(config.to_dict()['packages'], ['amsmath', 'hyperref'])


if __name__ == '__main__':
    unittest.main()
