"""
Domain layer for tlsetup.

Contains pure domain objects with no I/O or side effects:
- Version: TeX Live release year or "latest"
- Dependency: An entry of a DEPENDS.txt file
- TLPObj: A package record from texlive.tlpdb
- Release: A release with its date

These objects are immutable and provide serialization methods
for JSONL output.
"""

from .version import Version, InvalidVersionError, LATEST
from .dependency import Dependency, DependencyType, Directive
from .tlpobj import TLPObj, TLConfig, TLOptions
from .release import Release

__all__ = [
    'Version',
    'InvalidVersionError',
    'LATEST',
    'Dependency',
    'DependencyType',
    'Directive',
    'TLPObj',
    'TLConfig',
    'TLOptions',
    'Release',
]
