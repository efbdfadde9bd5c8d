"""
Service layer for tlsetup.

Contains the setup logic that orchestrates domain objects and infrastructure:
- SetupConfig: Input validation and defaults
- Installer: install-tl with repository fallback
- Updater: tlmgr updates of restored installations
- CacheService: Cross-run caching of the installation
- SetupService: The complete setup flow

Services are the primary API for commands to use.
"""

from .setup_config import SetupConfig
from .installer import Installer
from .updater import Updater
from .cache_service import CacheService, CacheKeys, DirectoryCacheStore
from .setup_service import SetupService

__all__ = [
    'SetupConfig',
    'Installer',
    'Updater',
    'CacheService',
    'CacheKeys',
    'DirectoryCacheStore',
    'SetupService',
]
