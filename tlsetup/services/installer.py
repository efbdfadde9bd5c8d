"""
Installer service for tlsetup.

Runs install-tl against the right repository and, for the latest
release only, retries once against the CTAN master site when the
mirror looks out of sync with it.
"""

import logging
from typing import Optional

from ..errors import InstallTLError, TLError, TlpdbError
from ..install_tl import InstallTL, InstallTLProvider, Profile
from ..releases import ReleaseData
from ..tlnet import TlnetLocator

logger = logging.getLogger(__name__)

# Faults that a fresh repository may cure
RECOVERABLE_CODES = frozenset({
    InstallTLError.Code.FAILED_TO_DOWNLOAD,
    InstallTLError.Code.UNEXPECTED_VERSION,
    InstallTLError.Code.INCOMPATIBLE_REPOSITORY_VERSION,
    TlpdbError.Code.FAILED_TO_INITIALIZE,
})


def is_recoverable(error: BaseException) -> bool:
    """Check if an install fault is worth one retry against another repository."""
    if isinstance(error, InstallTLError):
        return error.code in RECOVERABLE_CODES
    if isinstance(error, TlpdbError):
        return error.code is TlpdbError.Code.FAILED_TO_INITIALIZE
    return False


class Installer:
    """
    Installs TeX Live with a one-shot repository fallback.

    Fallback applies only when no repository was given and the latest
    release is requested; otherwise faults propagate unchanged.

    Example:
        installer = Installer(profile, tlnet, provider, releases)
        repository = installer.run()
    """

    def __init__(
        self,
        profile: Profile,
        tlnet: TlnetLocator,
        provider: InstallTLProvider,
        releases: ReleaseData,
        repository: Optional[str] = None,
    ):
        self.profile = profile
        self.tlnet = tlnet
        self.provider = provider
        self.releases = releases
        self.repository = repository
        self.max_retries = 1 if repository is None and releases.is_latest(profile.version) else 0
        self.attempt = 1
        self._install_tl: Optional[InstallTL] = None

    @property
    def version(self):
        return self.profile.version

    def run(self) -> str:
        """
        Install TeX Live.

        Returns:
            The repository the installation succeeded with
        """
        while True:
            repository = self.pick_repository()
            try:
                self.try_with(repository)
                return repository
            except (InstallTLError, TlpdbError) as e:
                if self.attempt <= self.max_retries and is_recoverable(e):
                    logger.info(f"{type(e).__name__} ({e.code.value}): {e}")
                    self.attempt += 1
                    continue
                raise

    def try_with(self, repository: str) -> None:
        if self.attempt > 1:
            logger.info(f"Switched to repository: {repository}")
        else:
            logger.info(f"Using repository: {repository}")
        if self._install_tl is None:
            self._install_tl = self.provider.acquire(repository, self.version)
        self._install_tl.run(self.profile, repository)

    def pick_repository(self) -> str:
        if self.attempt == 1 and self.repository is not None:
            return self.repository
        if self.releases.is_latest(self.version):
            if self.attempt == 1:
                return self.tlnet.ctan(master=False)
            if self.attempt == 2:
                return self.tlnet.ctan(master=True)
        elif self.attempt == 1:
            return self.tlnet.historic(self.version)
        raise TLError('Failed to find a suitable repository', version=self.version)
