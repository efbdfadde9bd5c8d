"""
Setup configuration for tlsetup.

SetupConfig.load() validates and defaults every setup input explicitly:
the release to install, the repository to use, where to install and
which packages to add.
"""

import glob
import logging
import os
import posixpath
import re
import tempfile
from dataclasses import dataclass, field
from typing import List, MutableMapping, Optional
from urllib.parse import urlsplit, urlunsplit

from .. import depends_txt
from ..domain.version import Version, LATEST
from ..errors import UnsupportedVersionError
from ..install_tl import InstallTLProvider, current_arch, current_platform
from ..releases import ReleaseData
from ..tlnet import TlnetLocator

logger = logging.getLogger(__name__)

_HISTORIC_RE = re.compile(r'/historic/systems/texlive/(\d{4})/')
# See `only_load_remote` in install-tl
_REPOSITORY_SUFFIX_RE = re.compile(r'(?:/archive/?|/tlpkg(?:/(?:texlive\.tlpdb)?)?)$')

SYSTEM_TREES = ('TEXDIR', 'TEXMFLOCAL', 'TEXMFSYSCONFIG', 'TEXMFSYSVAR')


def init_env(env: Optional[MutableMapping[str, str]] = None) -> MutableMapping[str, str]:
    """Set the environment install-tl expects in non-interactive use."""
    env = os.environ if env is None else env
    env.setdefault('TEXLIVE_INSTALL_ENV_NOCHECK', '1')
    env.setdefault('TEXLIVE_INSTALL_NO_WELCOME', '1')
    for tree in SYSTEM_TREES:
        key = f'TEXLIVE_INSTALL_{tree}'
        if tree != 'TEXMFLOCAL' and key in env:
            logger.warning(f"`{key}` is set, but ignored")
            del env[key]
    return env


def normalize_repository(repository: str) -> str:
    """
    Validate a repository URL and normalize its path to end with a slash.

    Raises:
        ValueError: For non-http(s) URLs
    """
    parts = urlsplit(repository.strip())
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise ValueError(
            f"Currently only http/https repositories are supported: {repository}"
        )
    path = posixpath.normpath(parts.path or '/')
    path = _REPOSITORY_SUFFIX_RE.sub('', path)
    if not path.endswith('/'):
        path += '/'
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ''))


def validate_release(version: str, releases: ReleaseData,
                     platform: Optional[str] = None, arch: Optional[str] = None) -> Version:
    """
    Check that a requested release can be installed on this platform.

    Raises:
        UnsupportedVersionError: If the release is unknown or unsupported here
    """
    platform = platform or current_platform()
    arch = arch or current_arch()
    if not Version.is_version(version):
        raise UnsupportedVersionError(f"{version} is not a valid version")
    v = Version.parse(version)
    if v < '2008':
        raise UnsupportedVersionError('Versions prior to 2008 are not supported', v)
    if platform.startswith('linux') and arch in ('arm64', 'aarch64') and v < '2017':
        raise UnsupportedVersionError('Versions prior to 2017 does not support AArch64 Linux', v)
    if platform == 'darwin' and v < '2013':
        raise UnsupportedVersionError('Versions prior to 2013 does not work on 64-bit macOS', v)
    if v > releases.next.version:
        raise UnsupportedVersionError(f"{version} is not a valid version", v)
    return v


def collect_packages(packages: Optional[str] = None,
                     package_file: Optional[str] = None) -> List[str]:
    """Gather package names from inline DEPENDS.txt text and matching files."""
    names = []
    if packages is not None:
        logger.info("Parsing `packages` input...")
        names += [dep.name for dep in depends_txt.parse(packages)]
    if package_file is not None:
        logger.info("Looking for `package-file`...")
        found = False
        for path in sorted(glob.glob(package_file, recursive=True)):
            if not os.path.isfile(path):
                continue
            found = True
            logger.info(f"Parsing `{path}`...")
            names += [dep.name for dep in depends_txt.parse_file(path)]
        if not found:
            logger.info("No file matched the pattern `package-file`")
    unique = sorted(set(names))
    if packages is not None or package_file is not None:
        if unique:
            logger.info(f"{len(unique)} package(s) found: {' '.join(unique)}")
        else:
            logger.info("No packages found")
    return unique


@dataclass
class SetupConfig:
    """Validated setup inputs."""
    version: Version
    prefix: str
    texdir: Optional[str] = None
    repository: Optional[str] = None
    tlcontrib: bool = False
    update_all_packages: bool = False
    packages: List[str] = field(default_factory=list)
    cache: bool = True

    def to_dict(self) -> dict:
        return {
            'version': str(self.version),
            'prefix': self.prefix,
            'texdir': self.texdir,
            'repository': self.repository,
            'tlcontrib': self.tlcontrib,
            'update_all_packages': self.update_all_packages,
            'packages': list(self.packages),
            'cache': self.cache,
        }

    @classmethod
    def load(
        cls,
        releases: ReleaseData,
        tlnet: TlnetLocator,
        provider: Optional[InstallTLProvider] = None,
        version: Optional[str] = None,
        repository: Optional[str] = None,
        prefix: Optional[str] = None,
        texdir: Optional[str] = None,
        tlcontrib: bool = False,
        update_all_packages: bool = False,
        packages: Optional[str] = None,
        package_file: Optional[str] = None,
        cache: bool = True,
        platform: Optional[str] = None,
        arch: Optional[str] = None,
        env: Optional[MutableMapping[str, str]] = None,
    ) -> 'SetupConfig':
        """
        Build a SetupConfig from raw inputs.

        Raises:
            ValueError: For an invalid repository or a repository with a pre-2012 release
            UnsupportedVersionError: For a release that cannot be installed here
        """
        env = init_env(env)
        if repository:
            repository = normalize_repository(repository)
        else:
            repository = None

        if prefix is None:
            prefix = env.get('TEXLIVE_INSTALL_PREFIX') or os.path.join(tempfile.gettempdir(), 'tlsetup')
        prefix = os.path.normpath(os.path.expanduser(prefix))
        if texdir:
            texdir = os.path.normpath(os.path.expanduser(texdir))
        else:
            texdir = None

        version = version.strip().lower() if version else None
        config = cls(
            version=resolve_version(version, repository, releases, tlnet, provider, platform, arch),
            prefix=prefix,
            texdir=texdir,
            repository=repository,
            tlcontrib=tlcontrib,
            update_all_packages=update_all_packages,
            packages=collect_packages(packages, package_file),
            cache=cache,
        )

        if config.repository is not None and config.version < '2012':
            raise ValueError('Currently `repository` input is only supported with version 2012 or later')

        if config.version < releases.latest.version:
            if config.tlcontrib:
                logger.warning('TLContrib cannot be used with an older version of TeX Live')
                config.tlcontrib = False
            if config.update_all_packages and not (
                config.version < releases.previous.version and releases.new_version_released()
            ):
                logger.info('`update-all-packages` is ignored for older versions')
                config.update_all_packages = False

        return config


def resolve_version(version: Optional[str], repository: Optional[str], releases: ReleaseData,
                    tlnet: TlnetLocator, provider: Optional[InstallTLProvider] = None,
                    platform: Optional[str] = None, arch: Optional[str] = None) -> Version:
    if version is None and repository is not None:
        return check_remote_version(repository, releases, tlnet, provider)
    if version is None or version == LATEST:
        return releases.latest.version
    return validate_release(version, releases, platform, arch)


def check_remote_version(repository: str, releases: ReleaseData, tlnet: TlnetLocator,
                         provider: Optional[InstallTLProvider] = None) -> Version:
    """
    Find out which release a repository serves.

    A historic path names its release; otherwise the TEXLIVE_YYYY marker is
    probed for the latest and next releases, and as a last resort install-tl
    is downloaded to read its release text.
    """
    match = _HISTORIC_RE.search(urlsplit(repository).path)
    if match and Version.is_version(match.group(1)):
        return Version.parse(match.group(1))
    logger.info(f"Checking for remote version: {repository}")
    for candidate in (releases.latest.version, releases.next.version):
        if tlnet.check_version_file(repository, candidate) is not None:
            logger.info(f"Remote version: {candidate}")
            return candidate
    if provider is None:
        raise UnsupportedVersionError(f"Unable to determine the version of {repository}")
    version = provider.acquire(repository).version
    logger.info(f"Remote version: {version}")
    return version
