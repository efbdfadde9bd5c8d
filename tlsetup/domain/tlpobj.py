"""
TLPDB record objects for tlsetup.

`texlive.tlpdb` stores one block per package; tlsetup only keeps the
fields it needs to report what is installed.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class TLPObj:
    """
    A package entry in the TeX Live package database.

    Attributes:
        name: Package name (e.g., "amsmath", "texlive.infra")
        version: Catalogue version, if the package has one
        revision: TeX Live revision number ("" when absent)
    """

    name: str
    version: Optional[str] = None
    revision: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'version': self.version,
            'revision': self.revision,
        }


@dataclass(frozen=True)
class TLConfig:
    """Release information stored in the `00texlive.config` block."""
    release: Optional[str] = None


@dataclass(frozen=True)
class TLOptions:
    """Installation options stored in the `00texlive.installation` block."""
    location: Optional[str] = None
