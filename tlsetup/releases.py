"""
TeX Live release data.

The configured current release is trusted until the configured date of
the next release has passed somewhere on Earth. From then on, the CTAN
API is asked for the latest version on each run, so a new release is
picked up without polling before it can exist.
"""

import logging
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from .ctan.api import CtanApi
from .domain.release import Release
from .domain.version import Version, InvalidVersionError
from .errors import TLError
from .tlnet import TlnetLocator

logger = logging.getLogger(__name__)

# UTC+14:00 is the earliest time zone
TZ_EARLIEST = timezone(timedelta(hours=14))


def parse_release_date(value, tz: timezone = timezone.utc) -> Optional[datetime]:
    """Parse an ISO 8601 date; naive values are taken to be in `tz`."""
    if value is None or isinstance(value, datetime):
        date = value
    else:
        date = datetime.fromisoformat(str(value))
    if date is not None and date.tzinfo is None:
        date = date.replace(tzinfo=tz)
    return date


class LatestRelease:
    """
    The latest TeX Live release, as known to this run.

    Starts out as the configured current release and is only moved
    forward by check_version().
    """

    def __init__(self, current: Release, next_release: Release,
                 api: Optional[CtanApi] = None, tlnet: Optional[TlnetLocator] = None):
        self.current = current
        self.next_release = next_release
        self.api = api
        self.tlnet = tlnet
        self.version: Version = current.version
        self.release_date: Optional[datetime] = current.release_date

    def need_to_check(self, now: Optional[datetime] = None) -> bool:
        """Check if the next release date has been reached anywhere."""
        if self.next_release.release_date is None:
            return False
        now = now or datetime.now(timezone.utc)
        next_date = self.next_release.release_date
        if next_date.tzinfo is None:
            next_date = next_date.replace(tzinfo=TZ_EARLIEST)
        return now >= next_date

    def _update(self, latest: Version) -> None:
        if self.version < latest:
            self.version = latest
            self.release_date = None
            logger.warning(
                f"TeX Live {latest} has been released. "
                "The setup may not work properly for a few days after release."
            )
        logger.info(f"Latest version: {self.version}")

    def check_version(self) -> Version:
        """
        Ask the CTAN API for the latest version.

        Failures are logged and the known version is kept.
        """
        logger.info("Checking for latest version of TeX Live")
        try:
            data = self.api.pkg('texlive')
            number = (data.get('version') or {}).get('number', '')
            self._update(Version.parse(number))
        except (InvalidVersionError, TLError, OSError, ValueError, AttributeError) as e:
            logger.info(f"Failed to check for latest version: {e}", exc_info=True)
            logger.info(f"Use `{self.version}` as latest version")
        return self.version

    def check_release_date(self) -> datetime:
        """
        Get the release date of the latest version.

        There is no formal record of release times, so the Last-Modified
        time of TEXLIVE_YYYY on the master repository is used.

        Raises:
            TLError: If the version file or its timestamp is unavailable
        """
        if self.release_date is not None:
            return self.release_date
        if self.version == self.current.version and self.current.release_date is not None:
            self.release_date = self.current.release_date
            return self.release_date

        master = self.tlnet.ctan(master=True)
        headers = self.tlnet.check_version_file(master, self.version)
        if headers is None:
            raise TLError('`TEXLIVE_YYYY` file not found', version=self.version, repository=master)
        timestamp = headers.get('last-modified', '')
        try:
            date = parsedate_to_datetime(timestamp)
        except (TypeError, ValueError) as e:
            raise TLError(f"Invalid timestamp: {timestamp}", version=self.version,
                          repository=master) from e
        self.release_date = date.astimezone(timezone.utc)
        return self.release_date


class ReleaseData:
    """
    Previous, latest and next releases for the current run.

    Built once by setup() and shared through use().
    """

    _instance: Optional['ReleaseData'] = None

    def __init__(self, latest: LatestRelease):
        self.latest = latest
        year = int(latest.version)
        self.previous = Release(Version(year - 1))
        self.next = Release(Version(year + 1), latest.next_release.release_date
                            if latest.next_release.version == Version(year + 1) else None)

    def new_version_released(self) -> bool:
        return self.latest.current.version < self.latest.version

    def is_latest(self, version) -> bool:
        version = Version.parse(version)
        return version.is_latest or version == self.latest.version

    def is_one_previous(self, version) -> bool:
        return Version.parse(version) == self.previous.version

    @classmethod
    def setup(cls, config: dict, api: Optional[CtanApi] = None,
              tlnet: Optional[TlnetLocator] = None, now: Optional[datetime] = None) -> 'ReleaseData':
        """Compute the release data, once per run."""
        if cls._instance is not None:
            return cls._instance
        releases = config.get('releases', {})
        current = releases.get('current', {})
        upcoming = releases.get('next', {})
        latest = LatestRelease(
            Release(Version.parse(current['version']),
                    parse_release_date(current.get('release_date'))),
            Release(Version.parse(upcoming['version']),
                    parse_release_date(upcoming.get('release_date'), TZ_EARLIEST)),
            api=api,
            tlnet=tlnet,
        )
        if api is not None and latest.need_to_check(now):
            latest.check_version()
        cls._instance = cls(latest)
        return cls._instance

    @classmethod
    def use(cls) -> 'ReleaseData':
        if cls._instance is None:
            raise RuntimeError("ReleaseData.setup() has not been called")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
