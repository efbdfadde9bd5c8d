"""
CTAN JSON API client.

Only the package endpoint is used:

    GET https://ctan.org/json/2.0/pkg/{name}
    -> {"version": {"number": "2026"}, "texlive": "texlive-en", ...}
"""

import logging
from typing import Any, Dict, Optional

from ..infra.http_client import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://ctan.org/json/2.0"


class CtanApi:
    """
    Client for the CTAN JSON API.

    Example:
        api = CtanApi(HttpClient())
        number = api.pkg("texlive")["version"]["number"]
    """

    def __init__(self, http: HttpClient, base_url: str = DEFAULT_API_URL):
        self.http = http
        self.base_url = base_url.rstrip('/')

    def pkg(self, name: str) -> Dict[str, Any]:
        """
        Fetch package information.

        Raises:
            requests.RequestException: On transport errors or non-2xx status
        """
        return self.http.get_json(f"{self.base_url}/pkg/{name}")

    def texlive_name(self, name: str) -> Optional[str]:
        """
        Look up the TeX Live name of a CTAN package.

        Returns None when the lookup fails or the package is not in TeX Live.
        """
        try:
            data = self.pkg(name)
        except Exception as e:
            logger.info(f"Failed to request package data for {name}: {e}", exc_info=True)
            return None
        texlive = data.get('texlive') if isinstance(data, dict) else None
        if texlive is None:
            logger.info(f"Unexpected response for {name}: {data!r}")
        return texlive

    @classmethod
    def from_config(cls, config: dict, http: HttpClient) -> 'CtanApi':
        return cls(http, config.get('ctan', {}).get('api_url', DEFAULT_API_URL))
