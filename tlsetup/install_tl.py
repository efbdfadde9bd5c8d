"""
install-tl: the TeX Live installer.

Provides:
- Profile: the installation profile passed with `-profile`
- acquire(): download and unpack install-tl from a repository
- InstallTL.run(): run the installer and classify its failures
"""

import logging
import os
import platform as _platform
import re
import shutil
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from .domain.version import Version
from .errors import (
    InstallTLError,
    check_compatibility,
    check_package_checksum_mismatch,
    check_repository_health,
    check_repository_status,
)
from .infra.exec_client import ExecClient, ExecError
from .infra.http_client import HttpClient

logger = logging.getLogger(__name__)

RELEASE_TEXT_FILE = 'release-texlive.txt'
_RELEASE_RE = re.compile(r'^TeX Live .+ version (20\d{2})', re.MULTILINE)

# Option name -> first release that understands it
_OPTION_SINCE = {
    '-repository': '2009',
    '-no-continue': '2022',
    '-no-interaction': '2023',
}

# install-tl before 2018 cannot use https reliably
_HTTPS_SINCE = '2018'


def current_platform() -> str:
    return sys.platform


def current_arch() -> str:
    return _platform.machine().lower()


def archive_name(platform: Optional[str] = None) -> str:
    platform = platform or current_platform()
    return 'install-tl.zip' if platform == 'win32' else 'install-tl-unx.tar.gz'


def executable_name(version, platform: Optional[str] = None) -> str:
    platform = platform or current_platform()
    if platform != 'win32':
        return 'install-tl'
    if Version.parse(version) < '2013':
        return 'install-tl.bat'
    return 'install-tl-windows.bat'


class Profile:
    """
    Installation profile for install-tl.

    Directory trees are derived from `prefix` (TEXDIR = prefix/version)
    unless `texdir` is given. User trees follow the system trees unless
    `texuserdir` is given. The TEXLIVE_INSTALL_* variables override the
    derived defaults the same way install-tl itself honours them.

    Example:
        profile = Profile(Version.parse("2023"), prefix="/opt/texlive")
        with profile.open() as path:
            ...
    """

    SYSTEM_TREES = ('TEXDIR', 'TEXMFLOCAL', 'TEXMFSYSCONFIG', 'TEXMFSYSVAR')
    USER_TREES = ('TEXMFHOME', 'TEXMFCONFIG', 'TEXMFVAR')

    def __init__(
        self,
        version,
        prefix: Optional[str] = None,
        texdir: Optional[str] = None,
        texuserdir: Optional[str] = None,
        platform: Optional[str] = None,
        arch: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        if prefix is None and texdir is None:
            raise ValueError("Either prefix or texdir is required")
        self.version = Version.parse(version)
        self.platform = platform or current_platform()
        self.arch = arch or current_arch()
        env = os.environ if env is None else env

        def from_env(key: str, default: str) -> str:
            value = env.get(f'TEXLIVE_INSTALL_{key}')
            return str(Path(value).expanduser()) if value else default

        if texdir is None:
            self.TEXMFLOCAL = from_env('TEXMFLOCAL', os.path.join(prefix, 'texmf-local'))
            self.TEXDIR = os.path.join(prefix, str(self.version))
            self.TEXMFSYSCONFIG = from_env('TEXMFSYSCONFIG', os.path.join(self.TEXDIR, 'texmf-config'))
            self.TEXMFSYSVAR = from_env('TEXMFSYSVAR', os.path.join(self.TEXDIR, 'texmf-var'))
        else:
            self.TEXDIR = texdir
            self.TEXMFSYSCONFIG = os.path.join(texdir, 'texmf-config')
            self.TEXMFSYSVAR = os.path.join(texdir, 'texmf-var')
            self.TEXMFLOCAL = (
                from_env('TEXMFLOCAL', os.path.join(prefix, 'texmf-local'))
                if prefix is not None else os.path.join(texdir, 'texmf-local')
            )

        if texuserdir is not None:
            self.TEXMFHOME = os.path.join(texuserdir, 'texmf')
            self.TEXMFCONFIG = os.path.join(texuserdir, 'texmf-config')
            self.TEXMFVAR = os.path.join(texuserdir, 'texmf-var')
        else:
            self.TEXMFHOME = from_env('TEXMFHOME', self.TEXMFLOCAL)
            self.TEXMFCONFIG = from_env('TEXMFCONFIG', self.TEXMFSYSCONFIG)
            self.TEXMFVAR = from_env('TEXMFVAR', self.TEXMFSYSVAR)

    @property
    def selected_scheme(self) -> str:
        # scheme-infraonly first appeared in 2016
        return 'scheme-minimal' if self.version < '2016' else 'scheme-infraonly'

    def _instopt(self) -> Dict[str, str]:
        options = {}
        if self.version >= '2019':
            options['adjustpath'] = '0'
        if self.version >= '2011':
            options['adjustrepo'] = '0'
        if self.version < '2009':
            options['symlinks'] = '0'
        return options

    def _tlpdbopt(self) -> Dict[str, str]:
        options = {'autobackup': '0'}
        if self.version >= '2017':
            options['install_docfiles'] = '0'
            options['install_srcfiles'] = '0'
        else:
            options['doc'] = '0'
            options['src'] = '0'
        if self.platform == 'win32':
            if self.version >= '2009':
                options['desktop_integration'] = '0'
                options['w32_multi_user'] = '0'
            options['file_assocs'] = '0'
            if '2012' <= self.version < '2017':
                options['menu_integration'] = '0'
        return options

    def to_dict(self) -> Dict[str, str]:
        """Profile entries in the order install-tl writes them."""
        plain = {key: getattr(self, key) for key in self.SYSTEM_TREES + self.USER_TREES}
        plain['selected_scheme'] = self.selected_scheme
        if self.version < '2017':
            groups = {'option': {**self._instopt(), **self._tlpdbopt()}}
        else:
            groups = {'instopt': self._instopt(), 'tlpdbopt': self._tlpdbopt()}
        for prefix, values in groups.items():
            for key, value in values.items():
                plain[f'{prefix}_{key}'] = value
        if self.platform == 'darwin' and self.arch == 'arm64' and self.version < '2017':
            plain['binary_universal-darwin'] = '1'
        return plain

    def __str__(self) -> str:
        return '\n'.join(f'{key} {value}' for key, value in self.to_dict().items())

    @contextmanager
    def open(self) -> Iterator[str]:
        """Write the profile to a temporary file and yield its path."""
        tmpdir = tempfile.mkdtemp(prefix='tlsetup-')
        try:
            target = os.path.join(tmpdir, 'texlive.profile')
            with open(target, 'w', encoding='utf-8') as f:
                f.write(str(self))
            yield target
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)


class InstallTL:
    """An unpacked install-tl of a known release."""

    def __init__(self, directory: str, version, exec_client: Optional[ExecClient] = None,
                 platform: Optional[str] = None):
        self.directory = directory
        self.version = Version.parse(version)
        self.exec = exec_client or ExecClient()
        self.platform = platform or current_platform()

    @property
    def executable(self) -> str:
        return os.path.join(self.directory, executable_name(self.version, self.platform))

    def command_args(self, profile_path: str, repository: str) -> List[str]:
        args = [
            option for option in ('-no-continue', '-no-interaction')
            if self.version >= _OPTION_SINCE[option]
        ]
        args += ['-profile', profile_path]
        parts = urlsplit(repository)
        if parts.scheme == 'https' and self.version < _HTTPS_SINCE:
            repository = urlunsplit(('http',) + tuple(parts[1:]))
        args += [
            '-repository' if self.version >= _OPTION_SINCE['-repository'] else '-location',
            repository,
        ]
        return args

    def run(self, profile: Profile, repository: str) -> None:
        """
        Install TeX Live.

        Raises:
            InstallTLError: If the repository is incompatible or install-tl fails
            TlpdbError: If the repository database is unusable
        """
        self.exec.run(self.executable, ['-version'])
        with profile.open() as profile_path:
            result = self.exec.run(
                self.executable,
                self.command_args(profile_path, repository),
                check=False,
            )

        check_compatibility(result, self.version, repository)
        check_repository_status(result, self.version, repository)
        check_repository_health(result, self.version, repository)
        check_package_checksum_mismatch(result, self.version, repository)
        try:
            result.check()
        except ExecError as e:
            raise InstallTLError(
                'Failed to install TeX Live',
                version=self.version,
                repository=repository,
            ) from e


def read_release_version(directory: str) -> Version:
    """
    Read the release of an unpacked install-tl.

    Raises:
        InstallTLError: UNEXPECTED_VERSION if the release text is missing or unrecognized
    """
    remote_version = None
    try:
        with open(os.path.join(directory, RELEASE_TEXT_FILE), 'r', encoding='utf-8') as f:
            match = _RELEASE_RE.search(f.read())
        if match:
            remote_version = match.group(1)
            return Version.parse(remote_version)
    except (OSError, ValueError) as e:
        raise InstallTLError(
            f"Unexpected install-tl version: {remote_version or 'unknown'}",
            code=InstallTLError.Code.UNEXPECTED_VERSION,
            remote_version=remote_version,
        ) from e
    raise InstallTLError(
        'Unexpected install-tl version: unknown',
        code=InstallTLError.Code.UNEXPECTED_VERSION,
    )


def _extract(archive: Path, destination: Path) -> Path:
    """Unpack an install-tl archive and return its top-level directory."""
    if archive.suffix == '.zip':
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    else:
        with tarfile.open(archive, 'r:gz') as tf:
            tf.extractall(destination, filter='data')
    children = [child for child in destination.iterdir() if child.is_dir()]
    return children[0] if len(children) == 1 else destination


class InstallTLProvider:
    """
    Downloads install-tl and keeps unpacked copies per release.

    Example:
        provider = InstallTLProvider(http, exec_client, "~/.cache/tlsetup")
        installer = provider.acquire("https://mirror/systems/texlive/tlnet/", version)
    """

    def __init__(self, http: HttpClient, exec_client: ExecClient,
                 cache_dir: Optional[str] = None, platform: Optional[str] = None):
        self.http = http
        self.exec = exec_client
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else None
        self.platform = platform or current_platform()

    def _cached(self, version: Version) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        return self.cache_dir / 'install-tl' / str(version)

    def restore(self, version: Version) -> Optional[str]:
        """Find an unpacked install-tl of the release in the tool cache."""
        target = self._cached(version)
        if target is not None and (target / executable_name(version, self.platform)).exists():
            logger.info(f"Found in tool cache: {target}")
            return str(target)
        return None

    def save(self, directory: Path, version: Version) -> str:
        target = self._cached(version)
        if target is None:
            return str(directory)
        try:
            logger.info("Adding to tool cache")
            if target.exists():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(directory, target)
            return str(target)
        except OSError as e:
            logger.info(f"Failed to cache install-tl: {e}", exc_info=True)
            return str(directory)

    def download(self, repository: str, workdir: Path) -> Path:
        """
        Download and unpack install-tl from a repository into workdir.

        Raises:
            InstallTLError: FAILED_TO_DOWNLOAD for FTP repositories or download errors
        """
        if urlsplit(repository).scheme == 'ftp':
            raise InstallTLError(
                'Download from FTP repositories is currently not supported',
                code=InstallTLError.Code.FAILED_TO_DOWNLOAD,
                repository=repository,
            )
        archive = archive_name(self.platform)
        url = urljoin(repository, archive)
        logger.info(f"Downloading {archive} from {url}")
        try:
            archive_path = self.http.download(url, workdir / archive)
        except Exception as e:
            raise InstallTLError(
                'Failed to download install-tl',
                code=InstallTLError.Code.FAILED_TO_DOWNLOAD,
                repository=repository,
            ) from e
        logger.info(f"Extracting install-tl from {archive_path}")
        return _extract(archive_path, workdir / 'extracted')

    def acquire(self, repository: str, version=None) -> InstallTL:
        """
        Get an install-tl matching the release.

        The download is unpacked in a temporary directory, which is removed
        unless it holds the returned install-tl (no tool cache).

        Args:
            repository: Repository to download from
            version: Expected release, or None to accept whatever is there

        Raises:
            InstallTLError: FAILED_TO_DOWNLOAD or UNEXPECTED_VERSION
        """
        if version is not None:
            version = Version.parse(version)
            directory = self.restore(version)
            if directory is not None:
                return InstallTL(directory, version, self.exec, self.platform)

        workdir = Path(tempfile.mkdtemp(prefix='tlsetup-install-tl-'))
        keep = False
        try:
            unpacked = self.download(repository, workdir)
            remote_version = read_release_version(str(unpacked))
            directory = self.save(unpacked, remote_version)
            if version is not None and version != remote_version:
                raise InstallTLError(
                    f"Unexpected install-tl version: {remote_version}",
                    code=InstallTLError.Code.UNEXPECTED_VERSION,
                    version=version,
                    repository=repository,
                    remote_version=str(remote_version),
                )
            keep = directory == str(unpacked)
            return InstallTL(directory, remote_version, self.exec, self.platform)
        finally:
            if not keep:
                shutil.rmtree(workdir, ignore_errors=True)
