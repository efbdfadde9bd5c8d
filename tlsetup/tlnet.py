"""
tlnet repository locations.

- ctan():      <mirror>/systems/texlive/tlnet/
- contrib():   <mirror>/systems/texlive/tlcontrib/
- historic():  <historic host>/historic/systems/texlive/<year>/tlnet-final/

The historic path depends on the release, so it is picked from an
ordered table of templates; the first entry whose range contains the
release wins.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlsplit

from .ctan.mirrors import MirrorResolver
from .domain.version import Version
from .infra.http_client import HttpClient

logger = logging.getLogger(__name__)

CTAN_PATH = "systems/texlive/tlnet/"
TLCONTRIB_PATH = "systems/texlive/tlcontrib/"
TLPRETEST_PATH = "systems/texlive/tlpretest/"
VERSION_FILE = "TEXLIVE_{version}"

HISTORIC_DEFAULT = "https://ftp.math.utah.edu/pub/tex/"
HISTORIC_MASTER = "ftp://tug.org/"
HISTORIC_PATHS = [
    {"template": "historic/systems/texlive/{version}/tlnet-final/", "versions": ">=2010"},
    {"template": "historic/systems/texlive/{version}/tlnet/", "versions": ">=2008 <2010"},
]


class TlnetLocator:
    """
    Builds repository URLs for TeX Live releases.

    Example:
        tlnet = TlnetLocator(resolver, http)
        tlnet.ctan()                       # https://<mirror>/systems/texlive/tlnet/
        tlnet.historic(Version.parse("2021"))
    """

    def __init__(
        self,
        mirrors: MirrorResolver,
        http: Optional[HttpClient] = None,
        ctan_path: str = CTAN_PATH,
        tlcontrib_path: str = TLCONTRIB_PATH,
        tlpretest_path: str = TLPRETEST_PATH,
        version_file: str = VERSION_FILE,
        pretest_version_file: str = VERSION_FILE,
        historic_default: str = HISTORIC_DEFAULT,
        historic_master: str = HISTORIC_MASTER,
        historic_paths: Optional[List[Dict[str, str]]] = None,
    ):
        self.mirrors = mirrors
        self.http = http if http is not None else mirrors.http
        self.ctan_path = ctan_path
        self.tlcontrib_path = tlcontrib_path
        self.tlpretest_path = tlpretest_path
        self.version_file = version_file
        self.pretest_version_file = pretest_version_file
        self.historic_default = historic_default
        self.historic_master = historic_master
        self.historic_paths = historic_paths if historic_paths is not None else HISTORIC_PATHS

    def ctan(self, master: bool = False) -> str:
        return urljoin(self.mirrors.resolve(master=master), self.ctan_path)

    def contrib(self, master: bool = False) -> str:
        return urljoin(self.mirrors.resolve(master=master), self.tlcontrib_path)

    def historic(self, version, master: bool = False) -> str:
        """
        Get the historic repository of a release.

        Raises:
            ValueError: If no template covers the release
        """
        version = Version.parse(version)
        for entry in self.historic_paths:
            if Version.satisfies(version, entry['versions']):
                path = entry['template'].format(version=version)
                base = self.historic_master if master else self.historic_default
                return urljoin(base, path)
        raise ValueError(f"No historic repository for TeX Live {version}")

    def is_pretest(self, repository: str) -> bool:
        return self.tlpretest_path in urlsplit(repository).path

    def check_version_file(self, repository: str, version) -> Optional[Dict[str, str]]:
        """
        Probe the TEXLIVE_YYYY marker of a repository.

        Returns:
            Response headers, or None if the file could not be fetched
        """
        template = self.pretest_version_file if self.is_pretest(repository) else self.version_file
        url = urljoin(repository, template.format(version=version))
        try:
            return self.http.get_headers(url)
        except Exception as e:
            logger.debug(f"Version file not available: {url} ({e})")
            return None

    @classmethod
    def from_config(cls, config: dict, mirrors: MirrorResolver,
                    http: Optional[HttpClient] = None) -> 'TlnetLocator':
        tlnet = config.get('tlnet', {})
        historic = tlnet.get('historic', {})
        return cls(
            mirrors,
            http=http,
            ctan_path=tlnet.get('ctan_path', CTAN_PATH),
            tlcontrib_path=tlnet.get('tlcontrib_path', TLCONTRIB_PATH),
            tlpretest_path=tlnet.get('tlpretest_path', TLPRETEST_PATH),
            version_file=tlnet.get('version_file', VERSION_FILE),
            pretest_version_file=tlnet.get('pretest_version_file', VERSION_FILE),
            historic_default=historic.get('default', HISTORIC_DEFAULT),
            historic_master=historic.get('master', HISTORIC_MASTER),
            historic_paths=historic.get('paths'),
        )
