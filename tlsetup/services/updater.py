"""
Updater service for tlsetup.

Brings a restored installation up to date with its repositories:
- drops a pretest main repository once the release is out
- removes tlcontrib from older releases
- moves an outdated release to its historic repository
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from requests.utils import get_environ_proxies

from ..domain.version import Version
from ..errors import TLError, TlmgrError, TlpdbError
from ..releases import ReleaseData
from ..tlmgr import Tlmgr
from ..tlnet import TlnetLocator
from .cache_service import CacheService

logger = logging.getLogger(__name__)

MAIN_TAG = 'main'
TLCONTRIB_TAG = 'tlcontrib'


class Updater:
    """
    Updates tlmgr and, optionally, every package.

    Example:
        Updater(tlmgr, tlnet, releases, cache).update(version)
    """

    def __init__(self, tlmgr: Tlmgr, tlnet: TlnetLocator, releases: ReleaseData,
                 cache: Optional[CacheService] = None):
        self.tlmgr = tlmgr
        self.tlnet = tlnet
        self.releases = releases
        self.cache = cache

    def update(self, version, repository: Optional[str] = None,
               update_all_packages: bool = False) -> None:
        """
        Raises:
            TlmgrError: If the update fails for reasons a move cannot fix
            TlpdbError: If neither historic repository can be used
        """
        version = Version.parse(version)
        try:
            self.update_repositories(version, repository, update_all_packages)
        except TlmgrError as e:
            if e.code is TlmgrError.Code.TL_VERSION_OUTDATED and repository is None:
                logger.info(f"{e}")
                self.move_to_historic(version, update_all_packages)
            else:
                raise

    def update_tlmgr(self, update_all_packages: bool = False) -> None:
        self.tlmgr.update(
            self_update=True,
            all=update_all_packages,
            reinstall_forcibly_removed=update_all_packages,
        )

    def update_repositories(self, version: Version, repository: Optional[str],
                            update_all_packages: bool) -> None:
        latest = self.releases.latest.version
        if version >= self.releases.previous.version:
            for entry in list(self.tlmgr.repository_list()):
                if (
                    entry.tag == MAIN_TAG
                    and self.tlnet.tlpretest_path in entry.path
                    and repository is None
                    and version == latest
                ):
                    repository = self.tlnet.ctan()
                elif (
                    (entry.tag == TLCONTRIB_TAG or TLCONTRIB_TAG in entry.path)
                    and version < latest
                ):
                    logger.info(f"Removing {entry.tag or entry.path}")
                    self.tlmgr.repository_remove(entry.tag or entry.path)
        if repository is not None:
            self.change_repository(MAIN_TAG, repository)
        self.update_tlmgr(update_all_packages)

    def move_to_historic(self, version: Version, update_all_packages: bool = False) -> None:
        try:
            self.change_repository(MAIN_TAG, self.tlnet.historic(version))
            self.update_tlmgr(update_all_packages)
        except TlpdbError as e:
            if e.code is not TlpdbError.Code.FAILED_TO_INITIALIZE:
                raise
            logger.info(f"{e}")
            self.change_repository(MAIN_TAG, self.tlnet.historic(version, master=True))
            self.update_tlmgr(update_all_packages)
        if self.cache is not None:
            self.cache.update()

    def change_repository(self, tag: str, url: str) -> None:
        logger.info(f"Changing the repository `{tag}` to {url}")
        if urlsplit(url).scheme == 'ftp' and _has_proxy(url):
            raise TLError('The use of ftp repositories under proxy is currently not supported',
                          repository=url)
        self.tlmgr.repository_remove(tag)
        self.tlmgr.repository_add(url, tag)

    def adjust_texmf(self, profile) -> None:
        """Point the TEXMF variables of a restored tree at the profile's directories."""
        for key in ('TEXMFLOCAL',) + profile.USER_TREES:
            value = getattr(profile, key)
            if self.tlmgr.conf_texmf(key) != value:
                logger.info(f"Adjusting {key}: {value}")
                self.tlmgr.conf_texmf(key, value)


def _has_proxy(url: str) -> bool:
    return bool(get_environ_proxies(url))
