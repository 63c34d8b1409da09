"""
Storage Classes for Modification Persistence

Provides the durability boundary used by the workflow coordinator:
- ModificationStore interface (save / load / list)
- In-memory store for tests and single-process use
- File-based JSON store, one file per modification
"""

import asyncio
import json
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from changecontrol.errors import NotFound, PersistenceFailure
from changecontrol.statemachine.states import Modification

logger = logging.getLogger("ModificationStore")


def get_default_storage_path() -> Path:
    """
    Get the default storage path for modification files

    Returns:
        Path to storage directory
    """
    # Check for environment variable first
    env_path = os.environ.get("ITOT_STORAGE_PATH")
    if env_path:
        return Path(env_path)

    return Path.home() / ".itot" / "storage"


def ensure_storage_dirs(base_path: Optional[Path] = None) -> Dict[str, Path]:
    """
    Ensure storage directories exist

    Args:
        base_path: Base storage path (default: get_default_storage_path())

    Returns:
        Dict with paths for 'modifications' and 'backups'
    """
    if base_path is None:
        base_path = get_default_storage_path()

    paths = {
        "modifications": base_path / "modifications",
        "backups": base_path / "backups"
    }

    for path in paths.values():
        path.mkdir(parents=True, exist_ok=True)

    return paths


class ModificationStore(ABC):
    """Persistence interface for modifications"""

    @abstractmethod
    async def save(self, modification: Modification) -> None:
        """
        Durably store a modification

        Raises:
            PersistenceFailure: if the write was not acknowledged
        """

    @abstractmethod
    async def load(self, modification_id: str) -> Modification:
        """
        Load a modification

        Raises:
            NotFound: if no modification has this ID
        """

    @abstractmethod
    async def list(self) -> List[Modification]:
        """Load every stored modification"""

    async def exists(self, modification_id: str) -> bool:
        try:
            await self.load(modification_id)
        except NotFound:
            return False
        return True


class InMemoryModificationStore(ModificationStore):
    """Store that keeps modifications in a dictionary"""

    def __init__(self):
        self._items: Dict[str, Modification] = {}

    async def save(self, modification: Modification) -> None:
        self._items[modification.id] = modification

    async def load(self, modification_id: str) -> Modification:
        try:
            return self._items[modification_id]
        except KeyError:
            raise NotFound("Modification", modification_id) from None

    async def list(self) -> List[Modification]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)


class JsonFileModificationStore(ModificationStore):
    """
    File-based storage for modifications

    Directory structure:
        modifications/
            <id>.json
        backups/
            <id>.json.backup
    """

    def __init__(self, storage_path: Optional[Path] = None, backup: bool = True):
        """
        Initialize modification store

        Args:
            storage_path: Base storage path
            backup: Keep the previous version of each file
        """
        paths = ensure_storage_dirs(storage_path)
        self.path = paths["modifications"]
        self.backup_path = paths["backups"]
        self.backup = backup

    def _file_for(self, modification_id: str) -> Path:
        safe_id = "".join(c for c in modification_id if c.isalnum() or c in "-_")
        if not safe_id or safe_id != modification_id:
            raise ValueError(f"Invalid modification ID: {modification_id!r}")
        return self.path / f"{safe_id}.json"

    def _write(self, modification: Modification) -> None:
        target = self._file_for(modification.id)
        if self.backup and target.exists():
            shutil.copy2(target, self.backup_path / f"{target.name}.backup")

        tmp = target.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(modification.to_dict(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)

    @staticmethod
    def _parse(file: Path) -> Modification:
        with open(file, "r", encoding="utf-8") as f:
            modification = Modification.from_dict(json.load(f))
        if modification.id != file.stem:
            raise ValueError(f"{file.name} holds modification {modification.id}")
        return modification

    def _read(self, modification_id: str) -> Modification:
        try:
            target = self._file_for(modification_id)
        except ValueError:
            raise NotFound("Modification", modification_id) from None
        if not target.exists():
            raise NotFound("Modification", modification_id)

        try:
            return self._parse(target)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unreadable modification file {target.name}: {e}")
            raise PersistenceFailure(modification_id, e) from e

    async def save(self, modification: Modification) -> None:
        try:
            await asyncio.to_thread(self._write, modification)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save modification {modification.id}: {e}")
            raise PersistenceFailure(modification.id, e) from e

    async def load(self, modification_id: str) -> Modification:
        return await asyncio.to_thread(self._read, modification_id)

    async def list(self) -> List[Modification]:
        """Load every readable modification; unreadable files are logged and skipped"""
        def _read_all() -> List[Modification]:
            items = []
            for file in sorted(self.path.glob("*.json")):
                try:
                    items.append(self._parse(file))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping unreadable modification file {file.name}: {e}")
            return items

        return await asyncio.to_thread(_read_all)
