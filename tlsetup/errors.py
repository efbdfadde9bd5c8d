"""
Fault types for tlsetup.

TeX Live failures are raised as TLError subclasses carrying a stable
`code` plus the version and repository involved. The install fallback
inspects these codes to decide whether a retry is worthwhile, so a new
code is only retried once it is added to the recoverable set there.

The `check_*` functions classify the output of install-tl and tlmgr
(exit code and stderr) and raise the matching fault.
"""

import os
import re
from enum import Enum
from typing import Optional, List, Any, Dict

from .domain.version import Version


class TLError(Exception):
    """
    Base class for TeX Live faults.

    Attributes:
        code: Enum member identifying the failure
        version: TeX Live version involved
        repository: Repository URL involved
        remote_version: Version reported by the remote side
        note: Hint for the user on how to recover
    """

    def __init__(
        self,
        message: str,
        code: Optional[Enum] = None,
        version: Optional[Version] = None,
        repository: Optional[str] = None,
        remote_version: Optional[str] = None,
        note: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.version = version
        self.repository = str(repository) if repository is not None else None
        self.remote_version = remote_version
        self.note = note

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': str(self),
            'type': type(self).__name__,
            'code': self.code.value if self.code is not None else None,
            'version': str(self.version) if self.version is not None else None,
            'repository': self.repository,
            'remote_version': self.remote_version,
        }


class MirrorResolutionError(TLError):
    """Raised when the CTAN mirror location cannot be resolved."""


class NoSuitableMirrorError(MirrorResolutionError):
    """Raised when every probed mirror was rejected."""


class InstallTLError(TLError):
    """Raised when install-tl cannot be acquired or fails."""

    class Code(Enum):
        INCOMPATIBLE_REPOSITORY_VERSION = "INCOMPATIBLE_REPOSITORY_VERSION"
        UNEXPECTED_VERSION = "UNEXPECTED_VERSION"
        FAILED_TO_DOWNLOAD = "FAILED_TO_DOWNLOAD"


class TlpdbError(TLError):
    """Raised when a package database cannot be loaded or verified."""

    class Code(Enum):
        PACKAGE_CHECKSUM_MISMATCH = "PACKAGE_CHECKSUM_MISMATCH"
        FAILED_TO_INITIALIZE = "FAILED_TO_INITIALIZE"
        TLPDB_CHECKSUM_MISMATCH = "TLPDB_CHECKSUM_MISMATCH"

    def __init__(self, message: str, packages: Optional[List[str]] = None,
                 url: Optional[str] = None, stderr: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.packages = packages or []
        self.url = url
        self.stderr = stderr


class TlmgrError(TLError):
    """Raised when a tlmgr action fails in a recognizable way."""

    class Code(Enum):
        TL_VERSION_OUTDATED = "TL_VERSION_OUTDATED"
        TL_VERSION_NOT_SUPPORTED = "TL_VERSION_NOT_SUPPORTED"
        ACTION_NOT_SUPPORTED = "ACTION_NOT_SUPPORTED"

    def __init__(self, message: str, action: str, subaction: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action = action
        self.subaction = subaction


class PackageNotFound(TlmgrError):
    """Raised when requested packages are missing from the repository."""

    def __init__(self, packages: List[str], **kwargs):
        super().__init__('Some packages not found in the repository', **kwargs)
        self.packages = list(packages)


class UnsupportedVersionError(ValueError):
    """Raised when a version cannot be used on this platform or is unknown."""

    def __init__(self, message: str, version: Optional[Version] = None):
        super().__init__(message)
        self.version = version


# ---------------------------------------------------------------------------
# install-tl output
# ---------------------------------------------------------------------------

_INCOMPATIBLE_MSG = 'repository being accessed are not compatible'
_INCOMPATIBLE_RE = re.compile(r'^\s*repository:\s*(20\d{2})', re.MULTILINE)


def check_compatibility(result, version=None, repository=None) -> None:
    """Raise INCOMPATIBLE_REPOSITORY_VERSION if install-tl rejected the repository."""
    if result.exit_code != 0 and _INCOMPATIBLE_MSG in result.stderr:
        match = _INCOMPATIBLE_RE.search(result.stderr)
        raise InstallTLError(
            'The repository is not compatible with this version of install-tl',
            code=InstallTLError.Code.INCOMPATIBLE_REPOSITORY_VERSION,
            version=version,
            repository=repository,
            remote_version=match.group(1) if match else None,
            note=(
                'The CTAN mirrors may not have completed synchronisation '
                'against a release of new version of TeX Live. '
                'Please try re-running the workflow after a while.'
            ),
        )


# ---------------------------------------------------------------------------
# TLPDB output (shared by install-tl and tlmgr)
# ---------------------------------------------------------------------------

_CHECKSUM_RE = re.compile(r': checksums differ for (.+):$', re.MULTILINE)
_INITIALIZE_RE = re.compile(r'TLPDB::from_file could not initialize from: (.*)$', re.MULTILINE)
_DIGEST_RE = re.compile(r'from (.+): digest disagree')


def check_package_checksum_mismatch(result, version=None, repository=None) -> None:
    """Raise PACKAGE_CHECKSUM_MISMATCH listing the affected packages."""
    found = [
        os.path.basename(path).removesuffix('.tar.xz')
        for path in _CHECKSUM_RE.findall(result.stderr)
    ]
    if found:
        raise TlpdbError(
            'Checksums of some packages did not match',
            packages=sorted(set(found)),
            code=TlpdbError.Code.PACKAGE_CHECKSUM_MISMATCH,
            version=version,
            repository=repository,
            note=(
                'The CTAN mirror may be in the process of synchronisation. '
                'Please try re-running the workflow after a while.'
            ),
        )


def check_repository_status(result, version=None, repository=None) -> None:
    """Raise FAILED_TO_INITIALIZE if the remote database could not be loaded."""
    if result.exit_code != 0:
        match = _INITIALIZE_RE.search(result.stderr)
        if match:
            raise TlpdbError(
                'Repository initialization failed',
                url=match.group(1),
                stderr=result.stderr,
                code=TlpdbError.Code.FAILED_TO_INITIALIZE,
                version=version,
                repository=repository,
                note=(
                    'The repository may not have been synchronized yet. '
                    'Please try re-running the workflow after a while.'
                ),
            )


def check_repository_health(result, version=None, repository=None) -> None:
    """Raise TLPDB_CHECKSUM_MISMATCH if the remote database digest is wrong."""
    match = _DIGEST_RE.search(result.stderr)
    if match:
        raise TlpdbError(
            'Repository initialization failed',
            url=match.group(1),
            stderr=result.stderr,
            code=TlpdbError.Code.TLPDB_CHECKSUM_MISMATCH,
            version=version,
            repository=repository,
            note=(
                'The repository seems to have some problem. '
                'Please try re-running the workflow after a while.'
            ),
        )


# ---------------------------------------------------------------------------
# tlmgr output
# ---------------------------------------------------------------------------

_OUTDATED_RE = re.compile(r'is older than remote repository(?: \((\d{4})\))?')
_NOT_SUPPORTED_RE = re.compile(r'The TeX Live versions supported by the repository(.*)', re.DOTALL)

_PACKAGE_NOT_FOUND_PATTERNS = [
    ('2008', re.compile(r': Cannot find package (.+)$', re.MULTILINE)),
    ('>=2009 <2015', re.compile(r'^package (.+) not present in package repository', re.MULTILINE)),
    ('>=2015', re.compile(r'^tlmgr install: package (\S+) not present', re.MULTILINE)),
]


def check_outdated(result, action: str, version=None) -> None:
    """Raise TL_VERSION_OUTDATED if the installation is older than the repository."""
    if result.exit_code != 0:
        match = _OUTDATED_RE.search(result.stderr)
        if match:
            raise TlmgrError(
                'The version of TeX Live is outdated',
                action=action,
                code=TlmgrError.Code.TL_VERSION_OUTDATED,
                version=version,
                remote_version=match.group(1),
            )


def check_not_supported(result, action: str, version=None) -> None:
    """Raise TL_VERSION_NOT_SUPPORTED if the repository rejects this release."""
    if result.exit_code != 0:
        match = _NOT_SUPPORTED_RE.search(result.stderr)
        if match:
            rest = match.group(1).strip().splitlines()
            repository = rest[0].strip() if rest else None
            remote = rest[1].strip().strip('()') if len(rest) > 1 else None
            raise TlmgrError(
                'The version of TeX Live is not supported by the repository',
                action=action,
                code=TlmgrError.Code.TL_VERSION_NOT_SUPPORTED,
                version=version,
                repository=repository,
                remote_version=remote,
            )


def check_package_not_found(result, action: str, version: Version) -> None:
    """
    Raise PackageNotFound if tlmgr reported missing packages.

    Before 2015 a missing package did not change the exit status,
    so stderr is inspected regardless of it.
    """
    if version < '2015' or result.exit_code != 0:
        for versions, pattern in _PACKAGE_NOT_FOUND_PATTERNS:
            if Version.satisfies(version, versions):
                packages = pattern.findall(result.stderr)
                if packages:
                    raise PackageNotFound(packages, action=action, version=version)
                break
