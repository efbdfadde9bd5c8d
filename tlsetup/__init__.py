"""
tlsetup - Install and cache TeX Live for CI jobs.

Quick Start:
    from tlsetup import SetupService, load_config

    service = SetupService(load_config())
    service.run(version="latest", packages="hard amsmath hyperref")

Parsers:
    tlsetup.depends_txt.parse(text)  - DEPENDS.txt dependency records
    tlsetup.tlpdb.packages(db)       - packages of a texlive.tlpdb

Domain Objects:
    Version - TeX Live release year or "latest"
    Dependency - An entry of a DEPENDS.txt file
    TLPObj - A package record of texlive.tlpdb

Services:
    SetupService - The complete setup flow
    Installer - install-tl with repository fallback
    CacheService - Cross-run caching
"""

__version__ = "0.1.0"

from .config import load_config
from .domain import Version, Dependency, DependencyType, TLPObj
from .errors import TLError, InstallTLError, TlpdbError, TlmgrError, PackageNotFound
from .services import SetupService, Installer, CacheService

__all__ = [
    'load_config',
    'Version',
    'Dependency',
    'DependencyType',
    'TLPObj',
    'TLError',
    'InstallTLError',
    'TlpdbError',
    'TlmgrError',
    'PackageNotFound',
    'SetupService',
    'Installer',
    'CacheService',
]
