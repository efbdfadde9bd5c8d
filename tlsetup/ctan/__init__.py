"""
CTAN access: the JSON API and the mirror redirector.
"""

from .api import CtanApi
from .mirrors import MirrorResolver, CTAN_MASTER_URL, CTAN_MIRROR_URL

__all__ = [
    'CtanApi',
    'MirrorResolver',
    'CTAN_MASTER_URL',
    'CTAN_MIRROR_URL',
]
