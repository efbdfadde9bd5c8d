"""
File store infrastructure for tlsetup.

Provides JSON file persistence with:
- Atomic writes (write to temp, then rename)
- Automatic parent directory creation

Used to hand the cache entry from the setup run to the post-job save.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class FileStore:
    """
    JSON file persistence with atomic writes.

    Example:
        store = FileStore(Path("~/.cache/tlsetup/state.json"))
        store.set("cache", {"target": "/opt/texlive/2026", "key": "..."})
        entry = store.get("cache")
    """

    def __init__(self, path: Path):
        """
        Initialize FileStore.

        Args:
            path: Path to JSON file
        """
        self.path = Path(path).expanduser().resolve()
        self._cache: Optional[Dict[str, Any]] = None

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """Write data atomically using temp file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write('\n')

            os.replace(temp_path, self.path)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def read(self) -> Dict[str, Any]:
        """
        Read entire store.

        Returns:
            Dictionary with all stored data
        """
        if self._cache is not None:
            return self._cache.copy()

        try:
            if self.path.exists():
                with open(self.path, 'r') as f:
                    self._cache = json.load(f)
                    return self._cache.copy()
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Error reading {self.path}: {e}")

        self._cache = {}
        return {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self.read()
        data[key] = value
        self._write_atomic(data)
        self._cache = data

    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if key was deleted, False if not found
        """
        data = self.read()
        if key in data:
            del data[key]
            self._write_atomic(data)
            self._cache = data
            return True
        return False

    def __contains__(self, key: str) -> bool:
        return key in self.read()
