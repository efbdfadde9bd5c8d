"""
Infrastructure layer for tlsetup.

Contains abstractions for external systems:
- HttpClient: HTTP access (mirror redirector, CTAN API, downloads)
- ExecClient: External command execution (install-tl, tlmgr)
- FileStore: JSON file persistence

These provide clean interfaces that can be mocked for testing.
"""

from .http_client import HttpClient, REDIRECT_CODES
from .exec_client import ExecClient, ExecResult, ExecError
from .file_store import FileStore

__all__ = [
    'HttpClient',
    'REDIRECT_CODES',
    'ExecClient',
    'ExecResult',
    'ExecError',
    'FileStore',
]
