"""
tlmgr: the TeX Live package manager.

Each action is gated by the releases that implement it; calling an
action the installed release lacks raises ACTION_NOT_SUPPORTED before
anything is run.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, MutableMapping, Optional

from . import tlpdb
from .ctan.api import CtanApi
from .domain.tlpobj import TLConfig, TLOptions, TLPObj
from .domain.version import Version
from .errors import (
    PackageNotFound,
    TLError,
    TlmgrError,
    check_not_supported,
    check_outdated,
    check_package_checksum_mismatch,
    check_package_not_found,
    check_repository_health,
    check_repository_status,
)
from .infra.exec_client import ExecClient, ExecError, ExecResult

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = {
    'conf': '>=2010',
    'install': '*',
    'pinning': '>=2013',
    'repository': '>=2012',
    'update': '*',
    'version': '*',
}

_REPOSITORY_LINE_RE = re.compile(r'^\t(?P<path>.+) \((?P<tag>.+)\)$')


@dataclass(frozen=True)
class RepositoryConfig:
    """An entry of `tlmgr repository list`."""
    path: str
    tag: Optional[str] = None


class Tlmgr:
    """
    Runs tlmgr against an installation.

    Example:
        tlmgr = Tlmgr("/opt/texlive/2026", Version.parse("2026"))
        tlmgr.add_path()
        tlmgr.install(["amsmath", "hyperref"])
    """

    def __init__(
        self,
        texdir: str,
        version,
        exec_client: Optional[ExecClient] = None,
        api: Optional[CtanApi] = None,
        env: Optional[MutableMapping[str, str]] = None,
    ):
        self.texdir = texdir
        self.version = Version.parse(version)
        self.exec_client = exec_client or ExecClient()
        self.api = api
        self.env = os.environ if env is None else env

    def exec(self, action: str, args: Iterable[str] = (), check: bool = True) -> ExecResult:
        """
        Run a tlmgr action.

        Raises:
            TlmgrError: ACTION_NOT_SUPPORTED if the release lacks the action
            ExecError: If check is True and tlmgr fails
        """
        if not Version.satisfies(self.version, SUPPORTED_VERSIONS[action]):
            raise TlmgrError(
                f"`tlmgr {action}` not implemented in this version of TeX Live",
                action=action,
                code=TlmgrError.Code.ACTION_NOT_SUPPORTED,
                version=self.version,
            )
        return self.exec_client.run('tlmgr', [action, *args], env=self.env, check=check)

    # -- install ------------------------------------------------------------

    def install(self, packages: Iterable[str]) -> None:
        """
        Install packages.

        DEPENDS.txt uses CTAN names, which sometimes differ from the TeX Live
        ones; names tlmgr cannot find are looked up with the CTAN API and the
        install is retried once with the TeX Live names.

        Raises:
            PackageNotFound: If some packages have no TeX Live counterpart
        """
        try:
            self._try_to_install(sorted(set(packages)))
        except PackageNotFound as e:
            if self.api is None:
                raise
            logger.info(f"Trying to resolve package names: {', '.join(e.packages)}")
            resolved = set()
            not_found = []
            for ctan_name in e.packages:
                tl_name = self.api.texlive_name(ctan_name)
                if tl_name is not None:
                    resolved.add(tl_name)
                else:
                    not_found.append(ctan_name)
                logger.info(f"  {ctan_name} (in CTAN) => {tl_name or '???'} (in TeX Live)")
            if not_found:
                raise PackageNotFound(not_found, action='install', version=self.version) from e
            self._try_to_install(sorted(resolved))

    def _try_to_install(self, packages: List[str]) -> None:
        if not packages:
            return
        action = 'install'
        result = self.exec(action, packages, check=False)
        check_package_checksum_mismatch(result, self.version)
        # Before 2015 a missing package leaves the exit status alone,
        # so a failure here is something worse.
        if self.version < '2015':
            result.check()
        check_package_not_found(result, action, self.version)
        result.check()

    # -- update -------------------------------------------------------------

    def update(
        self,
        packages: Iterable[str] = (),
        all: bool = False,
        self_update: bool = False,
        reinstall_forcibly_removed: bool = False,
    ) -> ExecResult:
        """
        Update packages (or tlmgr itself).

        Raises:
            TlpdbError: If the repository database cannot be used
            TlmgrError: If the installation is outdated or unsupported
            ExecError: For any other failure
        """
        args = ['--all'] if all else list(packages)
        if self_update:
            # tlmgr 2008 has no --self
            args.append('--self' if self.version > '2008' else 'texlive.infra')
        if reinstall_forcibly_removed and self.version >= '2009':
            args.insert(0, '--reinstall-forcibly-removed')

        action = 'update'
        try:
            return self.exec(action, args)
        except ExecError as e:
            check_repository_status(e, self.version)
            check_repository_health(e, self.version)
            check_outdated(e, action, self.version)
            check_not_supported(e, action, self.version)
            raise

    # -- list ---------------------------------------------------------------

    def _read_tlpdb(self) -> Optional[str]:
        path = os.path.join(self.texdir, 'tlpkg', 'texlive.tlpdb')
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.info(f"Failed to read {path}: {e}")
            return None

    def list(self) -> Iterator[TLPObj]:
        """
        List installed packages.

        Reads tlpkg/texlive.tlpdb directly instead of running `tlmgr list`.
        An unreadable database yields nothing.
        """
        db = self._read_tlpdb()
        if db is None:
            return
        try:
            yield from tlpdb.packages(db)
        except ValueError as e:
            logger.info(f"Failed to parse the package database of {self.texdir}: {e}")

    def config(self) -> TLConfig:
        """Release recorded in the installed package database."""
        db = self._read_tlpdb()
        return tlpdb.read_config(db) if db is not None else TLConfig()

    def options(self) -> TLOptions:
        """Installation options recorded in the installed package database."""
        db = self._read_tlpdb()
        return tlpdb.read_options(db) if db is not None else TLOptions()

    # -- repository ---------------------------------------------------------

    def repository_add(self, repository: str, tag: Optional[str] = None) -> None:
        args = ['add', str(repository)]
        if tag is not None:
            args.append(tag)
        try:
            self.exec('repository', args)
        except ExecError as e:
            # Adding the same repository or tag again fails
            if 'repository or its tag already defined' not in e.stderr:
                raise

    def repository_remove(self, repository: str) -> None:
        self.exec('repository', ['remove', str(repository)])

    def repository_list(self) -> Iterator[RepositoryConfig]:
        stdout = self.exec('repository', ['list']).stdout
        # First line is a header
        for line in re.split(r'\r?\n', stdout)[1:]:
            if not line.strip():
                continue
            match = _REPOSITORY_LINE_RE.match(line)
            if match:
                yield RepositoryConfig(path=match.group('path'), tag=match.group('tag'))
            else:
                yield RepositoryConfig(path=line.strip())

    # -- pinning ------------------------------------------------------------

    def pinning_add(self, repository: str, *globs: str) -> None:
        if not globs:
            raise ValueError("At least one package pattern is required")
        self.exec('pinning', ['add', repository, *globs])

    # -- conf ---------------------------------------------------------------

    def conf_texmf(self, key: str, value: Optional[str] = None) -> Optional[str]:
        """
        Get or set a TEXMF variable.

        Without a value, returns the current value reported by kpsewhich.
        """
        if value is None:
            result = self.exec_client.run('kpsewhich', [f'-var-value={key}'],
                                          env=self.env, check=False)
            return result.stdout.strip() or None

        # tlmgr conf is not implemented before 2010
        if self.version < '2010':
            self.env[key] = value
        else:
            self.exec('conf', ['texmf', key, value])

        if key == 'TEXMFLOCAL':
            try:
                self.make_local_skeleton(value)
                self.exec_client.run('mktexlsr', [value], env=self.env)
            except (ExecError, OSError) as e:
                logger.info(f"Failed to initialize {key}: {e}")
        return None

    def make_local_skeleton(self, texmflocal: str) -> None:
        """Initialize TEXMFLOCAL the same way the installer does."""
        self.exec_client.run('perl', [
            f"-I{os.path.join(self.texdir, 'tlpkg')}",
            '-mTeXLive::TLUtils=make_local_skeleton',
            '-e',
            'make_local_skeleton shift',
            texmflocal,
        ], env=self.env)

    # -- misc ---------------------------------------------------------------

    def show_version(self) -> ExecResult:
        return self.exec('version', check=False)

    def bin_path(self) -> str:
        """
        Locate the binary directory (TEXDIR/bin/<platform>).

        Raises:
            TLError: Unless there is exactly one platform directory
        """
        bin_dir = Path(self.texdir) / 'bin'
        try:
            children = [child for child in bin_dir.iterdir() if child.is_dir()]
        except OSError as e:
            raise TLError("Unable to locate TeX Live's binary directory") from e
        if len(children) != 1:
            raise TLError(
                "Unable to locate TeX Live's binary directory: "
                f"expected one directory in {bin_dir}, found {len(children)}"
            )
        return str(children[0])

    def add_path(self) -> str:
        """Prepend the binary directory to PATH."""
        directory = self.bin_path()
        self.env['PATH'] = os.pathsep.join(filter(None, [directory, self.env.get('PATH', '')]))
        logger.info(f"Added {directory} to PATH")
        return directory
