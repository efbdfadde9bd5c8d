"""
Cache service for tlsetup.

Caches the installed TEXDIR between runs. Keys look like

    tlsetup-<platform>-<arch>-<version>-<sha256 of sorted packages>

so an exact hit means the same package set was installed before, while
the version prefix alone still restores a usable (if incomplete) tree.

The setup run only decides what to save; the entry is written to a
JSON state file and saved by a later `save` step once the job is done.
"""

import hashlib
import json
import logging
import tarfile
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..infra.file_store import FileStore
from ..install_tl import current_arch, current_platform

logger = logging.getLogger(__name__)

STATE_NAME = 'cache'
KEY_PREFIX = 'tlsetup'
ARCHIVE_SUFFIX = '.tar.gz'


class CacheKeys:
    """Cache keys for a release and package set."""

    def __init__(
        self,
        version,
        packages: Iterable[str],
        platform: Optional[str] = None,
        arch: Optional[str] = None,
        unique_id: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        platform = platform or current_platform()
        arch = arch or current_arch()
        digest = hashlib.sha256(
            json.dumps(sorted(set(packages))).encode('utf-8')
        ).hexdigest()
        self.secondary_key = f"{KEY_PREFIX}-{platform}-{arch}-{version}-"
        self.primary_key = f"{self.secondary_key}{digest}"
        self.unique_key = f"{self.primary_key}-{unique_id()}"


class DirectoryCacheStore:
    """
    Stores cache entries as tarballs in a local directory.

    Lookup follows the usual CI cache rules: an exact key match first,
    then the newest entry whose key starts with one of the restore keys.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory).expanduser()

    def _archive(self, key: str) -> Path:
        return self.directory / f"{key}{ARCHIVE_SUFFIX}"

    def find(self, key: str, restore_keys: Iterable[str] = ()) -> Optional[str]:
        if self._archive(key).exists():
            return key
        if not self.directory.is_dir():
            return None
        entries = sorted(
            self.directory.glob(f"*{ARCHIVE_SUFFIX}"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        for prefix in restore_keys:
            for entry in entries:
                name = entry.name[:-len(ARCHIVE_SUFFIX)]
                if name.startswith(prefix):
                    return name
        return None

    def restore(self, target: str, key: str, restore_keys: Iterable[str] = ()) -> Optional[str]:
        """
        Restore a directory.

        Returns:
            The matched key, or None on a miss
        """
        matched = self.find(key, restore_keys)
        if matched is None:
            return None
        target_path = Path(target)
        target_path.mkdir(parents=True, exist_ok=True)
        with tarfile.open(self._archive(matched), 'r:gz') as tf:
            tf.extractall(target_path, filter='data')
        return matched

    def save(self, target: str, key: str) -> Path:
        """Archive a directory under a key."""
        target_path = Path(target)
        if not target_path.is_dir():
            raise FileNotFoundError(f"Nothing to cache at {target}")
        self.directory.mkdir(parents=True, exist_ok=True)
        archive = self._archive(key)
        partial = archive.with_name(archive.name + '.partial')
        with tarfile.open(partial, 'w:gz') as tf:
            tf.add(target_path, arcname='.')
        partial.replace(archive)
        return archive


class CacheService:
    """
    Restores the installation at the start of a run and registers it for
    saving at the end.

    Example:
        cache = CacheService(texdir, keys, store, state)
        cache.restore()
        if not cache.restored:
            ...install...
        cache.register()
    """

    def __init__(
        self,
        target: str,
        keys: CacheKeys,
        store: DirectoryCacheStore,
        state: FileStore,
        enabled: bool = True,
        force_update: bool = False,
    ):
        self.target = target
        self.keys = keys
        self.store = store
        self.state = state
        self.enabled = enabled
        self._force_update = force_update
        self._matched_key: Optional[str] = None

    @property
    def restore_keys(self) -> List[str]:
        return [self.keys.primary_key, self.keys.secondary_key]

    def restore(self) -> 'CacheService':
        if not self.enabled:
            return self
        try:
            self._matched_key = self.store.restore(self.target, self.keys.unique_key, self.restore_keys)
            if self._matched_key is None:
                logger.info("Cache not found")
            else:
                logger.info(f"{self.target} restored from cache with key: {self._matched_key}")
        except (OSError, tarfile.TarError) as e:
            logger.warning(f"Failed to restore cache: {e}")
        return self

    def update(self) -> None:
        """Save the installation again even on an exact hit."""
        self._force_update = True

    @property
    def hit(self) -> bool:
        return self._matched_key is not None and self._matched_key.startswith(self.keys.primary_key)

    @property
    def restored(self) -> bool:
        return self._matched_key is not None

    @property
    def key(self) -> str:
        if not self.hit:
            return self.keys.primary_key
        if self._force_update:
            return self.keys.unique_key
        return self._matched_key

    def register(self) -> Optional[dict]:
        """Record what the save step should do."""
        if not self.enabled:
            return None
        entry = {'key': self.key}
        if self._force_update or not self.hit:
            entry['target'] = self.target
            logger.info(
                f"After the job completes, {self.target} will be saved to cache with key: {self.key}"
            )
        self.state.set(STATE_NAME, entry)
        return entry

    def to_dict(self) -> dict:
        return {
            'enabled': self.enabled,
            'hit': self.hit,
            'restored': self.restored,
            'key': self.key if self.enabled else None,
        }


def save_registered(store: DirectoryCacheStore, state: FileStore) -> Optional[str]:
    """
    Save the cache entry registered by a setup run.

    Returns:
        The key saved under, or None if nothing needed saving
    """
    entry = state.get(STATE_NAME)
    if not entry:
        logger.info("No cache entry registered")
        return None
    state.delete(STATE_NAME)
    if 'target' not in entry:
        logger.info(f"Cache hit occurred on the primary key {entry.get('key')}, not saving cache")
        return None
    store.save(entry['target'], entry['key'])
    logger.info(f"{entry['target']} saved with cache key: {entry['key']}")
    return entry['key']
