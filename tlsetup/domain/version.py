"""
Version domain object for tlsetup.

A TeX Live release is identified by its year ("2008", "2023", ...) or by
the sentinel "latest", which orders after every concrete year:

    Version.parse("2008") < Version.parse("2021") < Version.parse("latest")

Versions are immutable value objects and compare against plain year
strings as well:

    Version.parse("2015") >= "2013"   -> True

Range checks use PEP 440 specifiers from `packaging`, written the way
the TeX Live support tables are written (space separated, bare year for
an exact match):

    Version.satisfies("2021", ">=2012")        -> True
    Version.satisfies("2011", ">=2009 <2015")  -> True
    Version.satisfies("2008", "2008")          -> True
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional, Union

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import Version as _PackagingVersion

LATEST = "latest"

# Stand-in year used when "latest" is checked against a range
_LATEST_ORDINAL = 9999

_YEAR_RE = re.compile(r'^(?:199[6-9]|20\d\d)$')


class InvalidVersionError(ValueError):
    """Raised when a string is neither a release year nor "latest"."""

    def __init__(self, spec):
        super().__init__(f"`{spec}` is not a valid version spec")
        self.spec = spec


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """
    TeX Live release identifier.

    Attributes:
        year: Release year, or None for the "latest" sentinel
    """

    year: Optional[int] = None

    @classmethod
    def parse(cls, spec: Union[str, int, 'Version']) -> 'Version':
        """
        Parse a version string.

        Args:
            spec: "latest" or a four-digit year

        Returns:
            Parsed Version

        Raises:
            InvalidVersionError: If spec is not a valid version
        """
        if isinstance(spec, Version):
            return spec
        text = str(spec).strip()
        if text == LATEST:
            return cls()
        if not _YEAR_RE.match(text):
            raise InvalidVersionError(spec)
        return cls(int(text))

    @staticmethod
    def is_version(spec) -> bool:
        """Check if spec is a concrete release year."""
        return isinstance(spec, str) and _YEAR_RE.match(spec) is not None

    @property
    def is_latest(self) -> bool:
        return self.year is None

    def resolve(self, latest: 'Version') -> 'Version':
        """Replace the "latest" sentinel with a concrete release."""
        return Version.parse(latest) if self.is_latest else self

    def _ordinal(self) -> int:
        return _LATEST_ORDINAL if self.year is None else self.year

    @staticmethod
    def _coerce(other) -> Optional['Version']:
        if isinstance(other, Version):
            return other
        if isinstance(other, (str, int)):
            try:
                return Version.parse(other)
            except InvalidVersionError:
                return None
        return None

    def __eq__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self.year == other.year

    def __lt__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self._ordinal() < other._ordinal()

    def __hash__(self):
        return hash(self.year)

    def __int__(self):
        return self._ordinal()

    def __str__(self):
        return LATEST if self.year is None else str(self.year)

    def __repr__(self):
        return f"Version('{self}')"

    @staticmethod
    def satisfies(version: Union[str, 'Version'], constraint: str) -> bool:
        """
        Check if a version lies within a range.

        Args:
            version: Version or version string
            constraint: Range such as ">=2012", ">=2009 <2015", "2008" or "*"

        Returns:
            True if the version satisfies every clause of the range
        """
        v = Version.parse(version)
        return _PackagingVersion(str(v._ordinal())) in to_specifier(constraint)


def to_specifier(constraint: str) -> SpecifierSet:
    """
    Convert a space separated range into a SpecifierSet.

    A bare year becomes an exact match and "*" matches everything.
    """
    clauses = []
    for clause in re.split(r'[\s,]+', constraint.strip()):
        if not clause or clause == '*':
            continue
        if clause[0].isdigit():
            clause = f"=={clause}"
        clauses.append(clause)
    try:
        return SpecifierSet(','.join(clauses))
    except InvalidSpecifier as e:
        raise ValueError(f"Invalid version range: {constraint!r}") from e
