"""
Setup service for tlsetup.

Wires the collaborators together and runs the whole setup:

    restore cache -> install (with fallback) -> add to PATH
    -> update a restored tree -> tlcontrib -> install packages
    -> report versions -> register the cache entry
"""

import logging
import os
from typing import Any, Dict, Generator, MutableMapping, Optional

from ..ctan.api import CtanApi
from ..ctan.mirrors import MirrorResolver
from ..domain.version import Version
from ..infra.exec_client import ExecClient
from ..infra.file_store import FileStore
from ..infra.http_client import HttpClient
from ..install_tl import InstallTLProvider, Profile
from ..releases import ReleaseData
from ..tlmgr import Tlmgr
from ..tlnet import TlnetLocator
from .cache_service import CacheKeys, CacheService, DirectoryCacheStore, save_registered
from .installer import Installer
from .setup_config import SetupConfig
from .updater import Updater

logger = logging.getLogger(__name__)


class SetupService:
    """
    Entry point for setting up TeX Live.

    Example:
        service = SetupService(load_config())
        result = service.run(version="latest", packages="hard amsmath")
    """

    def __init__(
        self,
        config: Dict[str, Any],
        http: Optional[HttpClient] = None,
        exec_client: Optional[ExecClient] = None,
        env: Optional[MutableMapping[str, str]] = None,
    ):
        self.config = config
        self.env = os.environ if env is None else env
        self.http = http or HttpClient(timeout=config.get('http', {}).get('timeout_seconds', 30))
        self.exec = exec_client or ExecClient()
        self.mirrors = MirrorResolver.from_config(config, self.http)
        self.tlnet = TlnetLocator.from_config(config, self.mirrors, self.http)
        self.api = CtanApi.from_config(config, self.http)
        cache_config = config.get('cache', {})
        self.provider = InstallTLProvider(self.http, self.exec, cache_config.get('directory'))
        self.store = DirectoryCacheStore(cache_config.get('directory', '~/.cache/tlsetup'))
        self.state = FileStore(cache_config.get('state_file', '~/.cache/tlsetup/state.json'))

    def releases(self) -> ReleaseData:
        return ReleaseData.setup(self.config, self.api, self.tlnet)

    def load(self, **inputs) -> SetupConfig:
        return SetupConfig.load(self.releases(), self.tlnet, self.provider, env=self.env, **inputs)

    def run(self, **inputs) -> Dict[str, Any]:
        """
        Set up TeX Live.

        Args:
            **inputs: SetupConfig.load() inputs (version, repository, prefix, ...)

        Returns:
            Summary of the setup
        """
        setup = self.load(**inputs)
        releases = self.releases()
        profile = Profile(setup.version, prefix=setup.prefix, texdir=setup.texdir, env=self.env)

        cache = CacheService(
            profile.TEXDIR,
            CacheKeys(setup.version, setup.packages),
            self.store,
            self.state,
            enabled=setup.cache and bool(self.config.get('cache', {}).get('enabled', True)),
            force_update=bool(self.config.get('cache', {}).get('force_update', False)),
        )
        if cache.enabled:
            logger.info("Restoring cache")
            cache.restore()

        repository = setup.repository
        if not cache.restored:
            logger.info(f"Installation profile:\n{profile}")
            logger.info("Installing TeX Live")
            repository = Installer(profile, self.tlnet, self.provider, releases, setup.repository).run()

        tlmgr = Tlmgr(profile.TEXDIR, setup.version, self.exec, self.api, self.env)
        tlmgr.add_path()

        if cache.restored:
            updater = Updater(tlmgr, self.tlnet, releases, cache)
            if setup.version >= releases.previous.version:
                if setup.update_all_packages:
                    logger.info("Updating packages")
                elif setup.version >= releases.latest.version:
                    logger.info("Updating tlmgr")
                else:
                    logger.info("Checking the package repository status")
                updater.update(setup.version, setup.repository, setup.update_all_packages)
            updater.adjust_texmf(profile)

        if setup.tlcontrib:
            logger.info("Setting up TLContrib")
            tlmgr.repository_add(self.tlnet.contrib(), 'tlcontrib')
            tlmgr.pinning_add('tlcontrib', '*')

        if not cache.hit and setup.packages:
            logger.info("Installing packages")
            tlmgr.install(setup.packages)

        logger.info("TeX Live environment details")
        tlmgr.show_version()
        installed = tlmgr.config()
        if installed.release:
            logger.info(f"Installed release: {installed.release}")
        location = tlmgr.options().location
        if location:
            logger.info(f"Package repository: {location}")
        logger.info("Package versions:")
        for package in tlmgr.list():
            logger.info(f"  {package.name}: {package.version or 'rev' + package.revision}")

        cache.register()
        return {
            'version': str(setup.version),
            'release': installed.release,
            'texdir': profile.TEXDIR,
            'repository': repository,
            'packages': setup.packages,
            'cache_hit': cache.hit,
            'cache_restored': cache.restored,
        }

    def save_cache(self) -> Optional[str]:
        """Save the cache entry registered by run()."""
        return save_registered(self.store, self.state)

    def repository(self, version: str, master: bool = False) -> str:
        """Get the repository URL for a release."""
        releases = self.releases()
        v = Version.parse(version)
        if releases.is_latest(v):
            return self.tlnet.ctan(master=master)
        return self.tlnet.historic(v, master=master)

    def packages(self, texdir: str, version: Optional[str] = None) -> Generator:
        """List the packages installed in a tree."""
        tlmgr = Tlmgr(texdir, version or Version(), self.exec, env=self.env)
        yield from tlmgr.list()
