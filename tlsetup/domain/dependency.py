"""
Dependency domain object for tlsetup.

A DEPENDS.txt file lists the packages a project needs:

    package mypkg        # following entries belong to "mypkg"
    hard amsmath geometry
    soft hyperref

Each name becomes one Dependency record.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class DependencyType(Enum):
    """How strongly a dependency is required."""
    HARD = "hard"
    SOFT = "soft"


class Directive(Enum):
    """Keywords that may start a DEPENDS.txt line."""
    PACKAGE = "package"
    HARD = "hard"
    SOFT = "soft"

    @property
    def dependency_type(self) -> Optional[DependencyType]:
        """Dependency type introduced by this directive, if any."""
        if self is Directive.HARD:
            return DependencyType.HARD
        if self is Directive.SOFT:
            return DependencyType.SOFT
        return None


@dataclass(frozen=True)
class Dependency:
    """
    A single dependency declared in DEPENDS.txt.

    Attributes:
        name: Package name (never empty)
        type: Hard or soft dependency
        package: Owning package set by a preceding `package` directive
    """

    name: str
    type: DependencyType = DependencyType.HARD
    package: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type.value,
            'package': self.package,
        }
