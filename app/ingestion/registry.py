"""Registry of configured data sources."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from app.core.config import DataSource, Settings, settings
from app.core.errors import UnknownSourceError


class SourceRegistry:
    """Ordered, name-unique collection of DataSource entries.

    Built from ``Settings.DATA_SOURCES`` by default; tests and scripts can
    inject their own list. Adding a source is a configuration change only.
    """

    def __init__(self, sources: Iterable[DataSource]):
        self._sources: Dict[str, DataSource] = {}
        for source in sources:
            if source.name in self._sources:
                raise ValueError(f"Duplicate source name in registry: {source.name}")
            self._sources[source.name] = source

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "SourceRegistry":
        return cls((config or settings).DATA_SOURCES)

    def all(self) -> List[DataSource]:
        return list(self._sources.values())

    def names(self) -> List[str]:
        return list(self._sources)

    def get(self, name: str) -> DataSource:
        try:
            return self._sources[name]
        except KeyError:
            raise UnknownSourceError(name) from None

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources
