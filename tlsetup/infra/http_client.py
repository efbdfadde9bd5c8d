"""
HTTP client infrastructure for tlsetup.

Thin wrapper over a requests Session used for:
- Probing the CTAN mirror redirector (HEAD without following redirects)
- Querying the CTAN JSON API
- Checking for version marker files on repositories
- Downloading the install-tl archive
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# Status codes accepted as a redirect to a mirror
REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})


class HttpClient:
    """
    Client for the HTTP endpoints tlsetup talks to.

    Example:
        http = HttpClient()
        data = http.get_json("https://ctan.org/json/2.0/pkg/texlive")
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        """
        Initialize HttpClient.

        Args:
            timeout: HTTP request timeout in seconds
            session: Session to reuse (a new one is created by default)
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'tlsetup',
        })

    def head(self, url: str, allow_redirects: bool = False) -> requests.Response:
        """Send a HEAD request without raising on the status code."""
        logger.debug(f"HEAD {url}")
        return self.session.head(url, allow_redirects=allow_redirects, timeout=self.timeout)

    def get_headers(self, url: str) -> Dict[str, str]:
        """
        Fetch the headers of a resource.

        Raises:
            requests.RequestException: On transport errors or non-2xx status
        """
        response = self.session.head(url, allow_redirects=True, timeout=self.timeout)
        response.raise_for_status()
        return {key.lower(): value for key, value in response.headers.items()}

    def get_json(self, url: str) -> Any:
        """
        GET a JSON document.

        Raises:
            requests.RequestException: On transport errors or non-2xx status
            ValueError: If the body is not valid JSON
        """
        logger.debug(f"GET {url}")
        response = self.session.get(url, headers={'Accept': 'application/json'}, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def download(self, url: str, destination: Path) -> Path:
        """
        Stream a file to disk.

        Raises:
            requests.RequestException: On transport errors or non-2xx status
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self.session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            with open(destination, 'wb') as f:
                shutil.copyfileobj(response.raw, f)
        return destination
