"""
Tests for install-tl profiles, invocation and acquisition.

Tests cover:
- Profile trees and version-dependent options
- Command line construction
- Failure classification after a run
- Downloading, unpacking and caching install-tl
"""

import io
import os
import shutil
import tarfile
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from tlsetup.domain.version import Version
from tlsetup.errors import InstallTLError, TlpdbError
from tlsetup.infra.exec_client import ExecError, ExecResult
from tlsetup.install_tl import (
    InstallTL,
    InstallTLProvider,
    Profile,
    executable_name,
    read_release_version,
)

REPO = 'https://example.com/systems/texlive/tlnet/'


class TestProfile(unittest.TestCase):
    """Test profile contents across releases."""

    def test_trees_from_prefix(self):
        profile = Profile('2023', prefix='/opt/texlive', platform='linux', arch='x86_64', env={})

        self.assertEqual(profile.TEXDIR, '/opt/texlive/2023')
        self.assertEqual(profile.TEXMFLOCAL, '/opt/texlive/texmf-local')
        self.assertEqual(profile.TEXMFSYSCONFIG, '/opt/texlive/2023/texmf-config')
        self.assertEqual(profile.TEXMFSYSVAR, '/opt/texlive/2023/texmf-var')
        self.assertEqual(profile.TEXMFHOME, profile.TEXMFLOCAL)
        self.assertEqual(profile.TEXMFCONFIG, profile.TEXMFSYSCONFIG)
        self.assertEqual(profile.TEXMFVAR, profile.TEXMFSYSVAR)

    def test_trees_from_texdir(self):
        profile = Profile('2023', texdir='/tl', platform='linux', env={})

        self.assertEqual(profile.TEXDIR, '/tl')
        self.assertEqual(profile.TEXMFLOCAL, '/tl/texmf-local')

    def test_texuserdir(self):
        profile = Profile('2023', prefix='/opt', texuserdir='/home/u/.texlive',
                          platform='linux', env={})
        self.assertEqual(profile.TEXMFHOME, '/home/u/.texlive/texmf')

    def test_env_override(self):
        env = {'TEXLIVE_INSTALL_TEXMFHOME': '/home/u/texmf'}
        profile = Profile('2023', prefix='/opt', platform='linux', env=env)
        self.assertEqual(profile.TEXMFHOME, '/home/u/texmf')

    def test_requires_location(self):
        with self.assertRaises(ValueError):
            Profile('2023', env={})

    def test_options_recent(self):
        options = Profile('2023', prefix='/opt', platform='linux', env={}).to_dict()

        self.assertEqual(options['selected_scheme'], 'scheme-infraonly')
        self.assertEqual(options['instopt_adjustpath'], '0')
        self.assertEqual(options['instopt_adjustrepo'], '0')
        self.assertEqual(options['tlpdbopt_autobackup'], '0')
        self.assertEqual(options['tlpdbopt_install_docfiles'], '0')
        self.assertNotIn('option_doc', options)

    def test_options_2016(self):
        options = Profile('2016', prefix='/opt', platform='linux', env={}).to_dict()

        self.assertEqual(options['selected_scheme'], 'scheme-infraonly')
        self.assertEqual(options['option_adjustrepo'], '0')
        self.assertEqual(options['option_doc'], '0')
        self.assertEqual(options['option_autobackup'], '0')
        self.assertNotIn('option_adjustpath', options)

    def test_options_2008(self):
        profile = Profile('2008', prefix='/opt', platform='linux', env={})
        options = profile.to_dict()

        self.assertEqual(profile.selected_scheme, 'scheme-minimal')
        self.assertEqual(options['option_symlinks'], '0')
        self.assertNotIn('option_adjustrepo', options)

    def test_options_windows(self):
        options = Profile('2015', prefix='C:/tl', platform='win32', env={}).to_dict()
        self.assertEqual(options['option_menu_integration'], '0')
        self.assertEqual(options['option_file_assocs'], '0')

    def test_universal_darwin(self):
        options = Profile('2016', prefix='/opt', platform='darwin', arch='arm64', env={}).to_dict()
        self.assertEqual(options['binary_universal-darwin'], '1')

    def test_str(self):
        text = str(Profile('2023', prefix='/opt/texlive', platform='linux', env={}))
        self.assertTrue(text.startswith('TEXDIR /opt/texlive/2023\n'))
        self.assertIn('selected_scheme scheme-infraonly', text.splitlines())

    def test_open(self):
        profile = Profile('2023', prefix='/opt', platform='linux', env={})
        with profile.open() as path:
            with open(path) as f:
                self.assertEqual(f.read(), str(profile))
        self.assertFalse(os.path.exists(path))


class TestInstallTL(unittest.TestCase):
    """Test running install-tl with a mocked process client."""

    def setUp(self):
        self.exec = MagicMock()
        self.profile = Profile('2023', prefix='/opt', platform='linux', env={})

    def installer(self, version='2023'):
        return InstallTL('/tmp/install-tl', version, self.exec, platform='linux')

    def test_executable(self):
        self.assertEqual(self.installer().executable, '/tmp/install-tl/install-tl')
        self.assertEqual(executable_name('2012', 'win32'), 'install-tl.bat')
        self.assertEqual(executable_name('2013', 'win32'), 'install-tl-windows.bat')

    def test_args_recent(self):
        self.assertEqual(self.installer('2023').command_args('p', REPO), [
            '-no-continue', '-no-interaction', '-profile', 'p', '-repository', REPO,
        ])

    def test_args_https_downgrade(self):
        self.assertEqual(self.installer('2017').command_args('p', REPO), [
            '-profile', 'p', '-repository', 'http://example.com/systems/texlive/tlnet/',
        ])

    def test_args_location(self):
        args = self.installer('2008').command_args('p', 'http://example.com/tlnet/')
        self.assertEqual(args[-2:], ['-location', 'http://example.com/tlnet/'])

    def test_run_success(self):
        self.exec.run.return_value = ExecResult('install-tl', (), 0)

        self.installer().run(self.profile, REPO)
        self.assertEqual(self.exec.run.call_count, 2)
        self.assertEqual(self.exec.run.call_args_list[0].args[1], ['-version'])
        self.assertFalse(self.exec.run.call_args_list[1].kwargs['check'])

    def test_run_incompatible(self):
        self.exec.run.side_effect = [
            ExecResult('install-tl', (), 0),
            ExecResult('install-tl', (), 1,
                       stderr='repository being accessed are not compatible:\n repository: 2024\n'),
        ]
        with self.assertRaises(InstallTLError) as ctx:
            self.installer().run(self.profile, REPO)
        self.assertIs(ctx.exception.code, InstallTLError.Code.INCOMPATIBLE_REPOSITORY_VERSION)

    def test_run_failed_to_initialize(self):
        self.exec.run.side_effect = [
            ExecResult('install-tl', (), 0),
            ExecResult('install-tl', (), 1,
                       stderr='TLPDB::from_file could not initialize from: x\n'),
        ]
        with self.assertRaises(TlpdbError) as ctx:
            self.installer().run(self.profile, REPO)
        self.assertIs(ctx.exception.code, TlpdbError.Code.FAILED_TO_INITIALIZE)

    def test_run_generic_failure(self):
        self.exec.run.side_effect = [
            ExecResult('install-tl', (), 0),
            ExecResult('install-tl', (), 2, stderr='disk full'),
        ]
        with self.assertRaises(InstallTLError) as ctx:
            self.installer().run(self.profile, REPO)
        self.assertIsNone(ctx.exception.code)
        self.assertIsInstance(ctx.exception.__cause__, ExecError)


def make_archive(path, version='2023'):
    """Write a minimal install-tl-unx.tar.gz."""
    with tarfile.open(path, 'w:gz') as tf:
        for name, content in [
            ('install-tl-20230313/install-tl', b'#!/bin/sh\n'),
            ('install-tl-20230313/release-texlive.txt',
             f'TeX Live (https://tug.org/texlive) version {version}\n'.encode()),
        ]:
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(content))


class TestInstallTLProvider(unittest.TestCase):
    """Test acquiring install-tl."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archive = os.path.join(self.temp_dir, 'install-tl-unx.tar.gz')
        make_archive(self.archive)

        self.http = MagicMock()

        def download(url, destination):
            shutil.copyfile(self.archive, destination)
            return Path(destination)

        self.http.download.side_effect = download
        self.provider = InstallTLProvider(
            self.http, MagicMock(), cache_dir=os.path.join(self.temp_dir, 'cache'), platform='linux'
        )

        self.work_dir = os.path.join(self.temp_dir, 'work')
        os.makedirs(self.work_dir)
        mkdtemp = tempfile.mkdtemp
        mkdtemp_patch = patch('tlsetup.install_tl.tempfile.mkdtemp',
                              side_effect=lambda prefix: mkdtemp(prefix=prefix, dir=self.work_dir))
        mkdtemp_patch.start()
        self.addCleanup(mkdtemp_patch.stop)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_acquire(self):
        installer = self.provider.acquire(REPO, '2023')

        self.assertEqual(installer.version, Version(2023))
        self.assertTrue(os.path.exists(installer.executable))
        self.http.download.assert_called_once()
        self.assertEqual(self.http.download.call_args.args[0], REPO + 'install-tl-unx.tar.gz')

    def test_acquire_uses_tool_cache(self):
        self.provider.acquire(REPO, '2023')
        installer = self.provider.acquire(REPO, '2023')

        self.assertEqual(self.http.download.call_count, 1)
        self.assertEqual(installer.directory,
                         os.path.join(self.temp_dir, 'cache', 'install-tl', '2023'))

    def test_acquire_without_expected_version(self):
        self.assertEqual(self.provider.acquire(REPO).version, Version(2023))

    def test_acquire_unexpected_version(self):
        with self.assertRaises(InstallTLError) as ctx:
            self.provider.acquire(REPO, '2024')
        self.assertIs(ctx.exception.code, InstallTLError.Code.UNEXPECTED_VERSION)
        self.assertEqual(ctx.exception.remote_version, '2023')

    def test_ftp_not_supported(self):
        with self.assertRaises(InstallTLError) as ctx:
            self.provider.acquire('ftp://tug.org/historic/systems/texlive/2021/tlnet-final/', '2021')
        self.assertIs(ctx.exception.code, InstallTLError.Code.FAILED_TO_DOWNLOAD)
        self.http.download.assert_not_called()

    def test_download_failure(self):
        error = OSError('connection reset')
        self.http.download.side_effect = error

        with self.assertRaises(InstallTLError) as ctx:
            self.provider.acquire(REPO, '2023')
        self.assertIs(ctx.exception.code, InstallTLError.Code.FAILED_TO_DOWNLOAD)
        self.assertIs(ctx.exception.__cause__, error)

    def test_read_release_version_missing(self):
        with self.assertRaises(InstallTLError) as ctx:
            read_release_version(self.temp_dir)
        self.assertIs(ctx.exception.code, InstallTLError.Code.UNEXPECTED_VERSION)

    def test_acquire_removes_download_after_caching(self):
        self.provider.acquire(REPO, '2023')
        self.assertEqual(os.listdir(self.work_dir), [])

    def test_acquire_unexpected_version_removes_download(self):
        with self.assertRaises(InstallTLError):
            self.provider.acquire(REPO, '2024')
        self.assertEqual(os.listdir(self.work_dir), [])

    def test_download_failure_removes_download(self):
        self.http.download.side_effect = OSError('connection reset')
        with self.assertRaises(InstallTLError):
            self.provider.acquire(REPO, '2023')
        self.assertEqual(os.listdir(self.work_dir), [])

    def test_acquire_without_tool_cache_keeps_download(self):
        provider = InstallTLProvider(self.http, MagicMock(), platform='linux')
        installer = provider.acquire(REPO, '2023')

        self.assertEqual(len(os.listdir(self.work_dir)), 1)
        self.assertTrue(installer.directory.startswith(self.work_dir))
        self.assertTrue(os.path.exists(installer.executable))


if __name__ == '__main__':
    unittest.main()
