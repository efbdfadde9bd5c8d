"""
TeX Live package database (texlive.tlpdb) parsing.

The database is a sequence of blocks, each starting with a `name` line:

    name amsmath
    category Package
    revision 66000
    catalogue-version 2.17n
    ...

Lines ending in a backslash continue on the next line and `#` starts a
comment. Only the fields tlsetup reports on are extracted.
"""

import re
from typing import Iterator, Tuple

from .domain.tlpobj import TLPObj, TLConfig, TLOptions

_ESCAPED_NEWLINE_RE = re.compile(r'\\\r?\n')
_COMMENT_RE = re.compile(r'#.*')
_NAME_RE = re.compile(r'^name[ \t](.*)$', re.MULTILINE)

_REVISION_RE = re.compile(r'^revision\s+(\d+)\s*$', re.MULTILINE)
_CATALOGUE_VERSION_RE = re.compile(r'^catalogue-version\s+(.*)$', re.MULTILINE)
_RELEASE_RE = re.compile(r'^depend\s+release/(\S+)', re.MULTILINE)
_LOCATION_RE = re.compile(r'^depend\s+(?:opt_)?location:(.+)$', re.MULTILINE)

INFRA_PACKAGE = 'texlive.infra'
_NON_PACKAGE_PREFIXES = ('scheme-', 'collection-')

_CONFIG_PACKAGE = '00texlive.config'
_OPTIONS_PACKAGES = ('00texlive.installation', '00texlive-installation.config')


def parse(db: str) -> Iterator[Tuple[str, str]]:
    """
    Split a texlive.tlpdb text into per-package blocks.

    Args:
        db: Full database text

    Yields:
        (name, data) pairs; data is "" for a block with nothing after its name
    """
    text = _ESCAPED_NEWLINE_RE.sub('', db)
    text = _COMMENT_RE.sub('', text)
    chunks = _NAME_RE.split(text)
    # chunks[0] is whatever precedes the first package
    for i in range(1, len(chunks), 2):
        name = chunks[i].rstrip()
        data = chunks[i + 1] if i + 1 < len(chunks) else ''
        yield name, data


def is_package(name: str) -> bool:
    """
    Check if a database entry is a regular, user-facing package.

    Schemes, collections, platform-specific subpackages
    (e.g. "kpathsea.x86_64-linux") and metadata blocks
    (e.g. "00texlive.config") are excluded; texlive.infra is
    always included.
    """
    if name == INFRA_PACKAGE:
        return True
    if '.' in name:
        return False
    return not name.startswith(_NON_PACKAGE_PREFIXES)


def to_tlpobj(name: str, data: str) -> TLPObj:
    """Extract the fields of interest from a package block."""
    version_match = _CATALOGUE_VERSION_RE.search(data)
    revision_match = _REVISION_RE.search(data)
    return TLPObj(
        name=name,
        version=version_match.group(1).rstrip() if version_match else None,
        revision=revision_match.group(1) if revision_match else '',
    )


def packages(db: str) -> Iterator[TLPObj]:
    """
    Yield a TLPObj for every regular package in the database.

    Package names are unique; should a name repeat, the first block wins.
    """
    seen = set()
    for name, data in parse(db):
        if is_package(name) and name not in seen:
            seen.add(name)
            yield to_tlpobj(name, data)


def read_config(db: str) -> TLConfig:
    """Read release information from the `00texlive.config` block."""
    for name, data in parse(db):
        if name == _CONFIG_PACKAGE:
            match = _RELEASE_RE.search(data)
            return TLConfig(release=match.group(1) if match else None)
    return TLConfig()


def read_options(db: str) -> TLOptions:
    """Read installation options from the installation block."""
    for name, data in parse(db):
        if name in _OPTIONS_PACKAGES:
            match = _LOCATION_RE.search(data)
            return TLOptions(location=match.group(1).strip() if match else None)
    return TLOptions()
