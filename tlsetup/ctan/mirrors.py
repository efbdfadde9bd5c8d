"""
CTAN mirror resolution.

mirrors.ctan.org answers every request with a redirect to a nearby
mirror. The resolver probes it with HEAD (without following the
redirect), rejects mirrors on the unstable list and remembers the first
acceptable one for the rest of the run.
"""

import logging
import re
import time
from typing import Callable, Iterable, List, Optional, Union
from urllib.parse import urlsplit

from ..errors import MirrorResolutionError, NoSuitableMirrorError
from ..infra.http_client import HttpClient, REDIRECT_CODES

logger = logging.getLogger(__name__)

CTAN_MASTER_URL = "http://dante.ctan.org/tex-archive/"
CTAN_MIRROR_URL = "https://mirrors.ctan.org/"

MAX_TRIES = 10
RETRY_DELAY = 0.5

# These mirrors often serve packages with checksum mismatches
UNSTABLE_MIRRORS = ("cicku",)


class MirrorResolver:
    """
    Resolves and memoizes a CTAN mirror location.

    Example:
        resolver = MirrorResolver(HttpClient())
        resolver.resolve()              # probes mirrors.ctan.org once
        resolver.resolve()              # memoized
        resolver.resolve(master=True)   # always the master URL
    """

    def __init__(
        self,
        http: HttpClient,
        master_url: str = CTAN_MASTER_URL,
        mirror_url: str = CTAN_MIRROR_URL,
        max_tries: int = MAX_TRIES,
        retry_delay: float = RETRY_DELAY,
        unstable_mirrors: Union[str, Iterable[str]] = UNSTABLE_MIRRORS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.http = http
        self.master_url = master_url
        self.mirror_url = mirror_url
        self.max_tries = max_tries
        self.retry_delay = retry_delay
        if isinstance(unstable_mirrors, str):
            unstable_mirrors = unstable_mirrors.split(',')
        self.unstable_mirrors: List[str] = [p.strip() for p in unstable_mirrors if p.strip()]
        self._unstable_re = (
            re.compile('|'.join(re.escape(p) for p in self.unstable_mirrors), re.IGNORECASE)
            if self.unstable_mirrors else None
        )
        self._sleep = sleep
        self._resolved: Optional[str] = None

    @property
    def resolved(self) -> Optional[str]:
        return self._resolved

    def is_unstable(self, url: str) -> bool:
        """Check if a mirror's hostname is on the unstable list."""
        if self._unstable_re is None:
            return False
        return self._unstable_re.search(urlsplit(url).hostname or '') is not None

    def resolve(self, master: bool = False) -> str:
        """
        Get the base URL of a CTAN mirror.

        Args:
            master: Return the master site instead, without memoizing

        Returns:
            Mirror base URL

        Raises:
            MirrorResolutionError: If probing the redirector fails
            NoSuitableMirrorError: If every probed mirror was unstable
        """
        if master:
            return self.master_url
        if self._resolved is not None:
            return self._resolved

        for attempt in range(1, self.max_tries + 1):
            try:
                response = self.http.head(self.mirror_url, allow_redirects=False)
                if response.status_code not in REDIRECT_CODES:
                    raise MirrorResolutionError(
                        f"Unexpected status {response.status_code} from {self.mirror_url}",
                        repository=self.mirror_url,
                    )
                location = response.headers.get('Location')
                if not location:
                    raise MirrorResolutionError(
                        f"No redirect location in response from {self.mirror_url}",
                        repository=self.mirror_url,
                    )
            except Exception as e:
                raise MirrorResolutionError(
                    'Failed to resolve the CTAN mirror location',
                    repository=self.mirror_url,
                ) from e

            logger.debug(f"[{attempt}/{self.max_tries}] Resolved CTAN mirror: {location}")
            if self.is_unstable(location):
                self._sleep(self.retry_delay)
                continue

            self._resolved = location
            return location

        raise NoSuitableMirrorError(
            'Failed to find a suitable CTAN mirror',
            repository=self.mirror_url,
        )

    def override(self, url: str) -> None:
        """Pin the resolved location."""
        self._resolved = url

    def reset(self) -> None:
        """Forget the resolved location."""
        self._resolved = None

    @classmethod
    def from_config(cls, config: dict, http: HttpClient, **kwargs) -> 'MirrorResolver':
        ctan = config.get('ctan', {})
        return cls(
            http,
            master_url=ctan.get('master_url', CTAN_MASTER_URL),
            mirror_url=ctan.get('mirror_url', CTAN_MIRROR_URL),
            max_tries=int(ctan.get('max_tries', MAX_TRIES)),
            retry_delay=float(ctan.get('retry_delay_seconds', RETRY_DELAY)),
            unstable_mirrors=ctan.get('unstable_mirrors', UNSTABLE_MIRRORS),
            **kwargs,
        )
