"""
Reference Table Store

Immutable keyed tables (standard sizes, derating factors, material
properties, hazard classes) shared by every calculator.

Tables are loaded from the YAML files in the rules directory. Each file's
top-level keys are table names, so one file usually carries all the tables
of one calculator. Tables are either mappings (looked up by exact key or by
nearest numeric key) or ordered catalogs (lists of standard sizes).
"""

import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)

_MISSING = object()


class LookupFailure(LookupError):
    """Base for table lookup misses."""


class TableNotFound(LookupFailure):
    def __init__(self, table: str):
        super().__init__(f"Reference table not found: {table}")
        self.table = table


class KeyNotFound(LookupFailure):
    def __init__(self, table: str, key: Any):
        super().__init__(f"Key {key!r} not found in reference table '{table}'")
        self.table = table
        self.key = key


def _freeze(value: Any) -> Any:
    """Recursively convert dicts to read-only proxies and lists to tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def as_plain(value: Any) -> Any:
    """Convert a frozen table value back into plain dicts/lists (JSON friendly)."""
    if isinstance(value, Mapping):
        return {k: as_plain(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [as_plain(v) for v in value]
    return value


def _numeric_key(table: str, key: Any) -> float:
    try:
        return float(key)
    except (TypeError, ValueError):
        raise ConfigError(f"Table '{table}' has non-numeric key {key!r}; nearest lookup needs numeric keys")


class ReferenceTableStore:
    """
    Read-only collection of named reference tables.

    Build from in-memory data (useful for synthetic tables in tests) or
    with load_reference_tables() from a rules directory.
    """

    def __init__(self, tables: Mapping[str, Any], source: str = "memory"):
        self._tables: Dict[str, Any] = {name: _freeze(data) for name, data in tables.items()}
        self.source = source

    def __contains__(self, name: str) -> bool:
        return name in self._tables

    def __repr__(self) -> str:
        return f"<ReferenceTableStore(source={self.source!r}, tables={len(self._tables)})>"

    def names(self) -> List[str]:
        return sorted(self._tables)

    def has(self, name: str) -> bool:
        return name in self._tables

    def table(self, name: str) -> Any:
        """Return a whole table (read-only mapping or tuple)."""
        try:
            return self._tables[name]
        except KeyError:
            raise TableNotFound(name) from None

    def mapping(self, name: str) -> Mapping:
        data = self.table(name)
        if not isinstance(data, Mapping):
            raise ConfigError(f"Reference table '{name}' is a catalog, not a keyed table")
        return data

    def catalog(self, name: str) -> Tuple:
        """Return an ordered catalog (ascending standard sizes)."""
        data = self.table(name)
        if isinstance(data, Mapping):
            return tuple(sorted(data.keys(), key=lambda k: _numeric_key(name, k)))
        return data

    def keys(self, name: str) -> List[float]:
        """Numeric keys of a keyed table, ascending."""
        return sorted(_numeric_key(name, k) for k in self.mapping(name))

    def lookup(self, name: str, key: Any, default: Any = _MISSING) -> Any:
        """
        Exact-match lookup.

        Args:
            name: Table name
            key: Exact key
            default: Fallback returned instead of raising KeyNotFound

        Returns:
            Table value for key
        """
        data = self.mapping(name)
        if key in data:
            return data[key]
        # YAML may have parsed "10" as int while callers pass 10.0
        if isinstance(key, (int, float)) and not isinstance(key, bool):
            for k in data:
                if isinstance(k, (int, float)) and not isinstance(k, bool) and float(k) == float(key):
                    return data[k]
        if default is not _MISSING:
            return default
        raise KeyNotFound(name, key)

    def nearest(self, name: str, query: float) -> Tuple[Any, Any]:
        """
        Nearest-numeric-key lookup.

        Picks the key with the smallest absolute distance to query. Ties go
        to the lower key, so a query exactly between two keys always
        resolves the same way.

        Returns:
            (key, value)
        """
        data = self.mapping(name)
        if not data:
            raise KeyNotFound(name, query)

        ordered = sorted(data.keys(), key=lambda k: _numeric_key(name, k))
        best_key = ordered[0]
        best_dist = abs(_numeric_key(name, best_key) - query)
        for key in ordered[1:]:
            dist = abs(_numeric_key(name, key) - query)
            if dist < best_dist:
                best_key, best_dist = key, dist
        return best_key, data[best_key]

    def nearest_value(self, name: str, query: float) -> Any:
        return self.nearest(name, query)[1]


def load_reference_tables(rules_dir: Path) -> ReferenceTableStore:
    """
    Load every *.yaml file in rules_dir into one store.

    Args:
        rules_dir: Directory holding the YAML rule files

    Returns:
        ReferenceTableStore
    """
    rules_dir = Path(rules_dir)
    if not rules_dir.is_dir():
        raise ConfigError(f"Rules directory not found: {rules_dir}")

    tables: Dict[str, Any] = {}
    origin: Dict[str, str] = {}

    for path in sorted(rules_dir.glob("*.yaml")):
        with open(path, encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path.name}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Rules file {path.name} must contain a mapping of table names")

        for name, data in config.items():
            if name in tables:
                raise ConfigError(
                    f"Duplicate reference table '{name}' in {path.name} (already defined in {origin[name]})"
                )
            tables[name] = data
            origin[name] = path.name

    if not tables:
        logger.warning(f"No reference tables found in {rules_dir}")
    else:
        logger.debug(f"Loaded {len(tables)} reference tables from {rules_dir}")

    return ReferenceTableStore(tables, source=str(rules_dir))


@lru_cache(maxsize=None)
def _store_for(rules_dir: str) -> ReferenceTableStore:
    return load_reference_tables(Path(rules_dir))


def default_store(rules_dir: Optional[Path] = None) -> ReferenceTableStore:
    """Process-wide store over the configured rules directory."""
    if rules_dir is None:
        from ..config import load_settings
        rules_dir = load_settings().rules_dir
    return _store_for(str(rules_dir))


def merge_stores(stores: Iterable[ReferenceTableStore]) -> ReferenceTableStore:
    """Combine stores; later stores override earlier tables of the same name."""
    tables: Dict[str, Any] = {}
    for store in stores:
        for name in store.names():
            tables[name] = as_plain(store.table(name))
    return ReferenceTableStore(tables, source="merged")
