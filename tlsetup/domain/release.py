"""
Release domain object for tlsetup.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .version import Version


@dataclass(frozen=True)
class Release:
    """A TeX Live release and, when known, its release date."""
    version: Version
    release_date: Optional[datetime] = None

    def __str__(self):
        return str(self.version)
