"""Table-level persistence with atomic full rewrites.

Each logical table (portfolios, trades, agents, ...) is loaded once on
start and rewritten in full after every mutation. Writes go through a
tempfile -> rename so a crash mid-write leaves the previous file intact.
"""

import copy
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Protocol

import yaml

logger = logging.getLogger(__name__)


class Table(Protocol):
    """Storage port for one logical table."""

    name: str

    def load(self) -> Any | None:
        """Return the stored data, or None if nothing was saved yet."""
        ...

    def save(self, data: Any) -> None:
        """Replace the stored data (last writer wins)."""
        ...


def _atomic_write(path: Path, content: str, suffix: str) -> None:
    """Write content to file atomically using tempfile + move."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=path.parent, delete=False, suffix=suffix, encoding="utf-8"
        ) as temp_file:
            temp_file.write(content)
            temp_path = Path(temp_file.name)
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


class YamlTable:
    """Table stored as a single YAML document."""

    def __init__(self, path: Path):
        self.path = path
        self.name = path.stem

    def load(self) -> Any | None:
        if not self.path.exists():
            logger.debug(f"Table file not found: {self.path}")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Corrupted YAML in {self.path}: {e}")
            raise

    def save(self, data: Any) -> None:
        content = yaml.safe_dump(
            data,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
        try:
            _atomic_write(self.path, content, suffix=".yaml")
            logger.debug(f"Saved {self.name} to {self.path}")
        except Exception as e:
            logger.error(f"Failed to save {self.name}: {e}")
            raise


class JsonTable:
    """Table stored as a single JSON document (used for the bulky append-heavy tables)."""

    def __init__(self, path: Path):
        self.path = path
        self.name = path.stem

    def load(self) -> Any | None:
        if not self.path.exists():
            logger.debug(f"Table file not found: {self.path}")
            return None

        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted JSON in {self.path}: {e}")
            raise

    def save(self, data: Any) -> None:
        try:
            _atomic_write(self.path, json.dumps(data, indent=2), suffix=".json")
            logger.debug(f"Saved {self.name} to {self.path}")
        except Exception as e:
            logger.error(f"Failed to save {self.name}: {e}")
            raise


class InMemoryTable:
    """Process-local table. Stores deep copies so callers cannot alias saved state."""

    def __init__(self, name: str = "memory", data: Any | None = None):
        self.name = name
        self._data = copy.deepcopy(data)
        self.saves = 0

    def load(self) -> Any | None:
        return copy.deepcopy(self._data)

    def save(self, data: Any) -> None:
        self._data = copy.deepcopy(data)
        self.saves += 1
