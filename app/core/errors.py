"""Error taxonomy for ingestion and persistence."""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for data, network and store conditions the pipeline recovers from."""


class FetchError(IngestionError):
    """A source could not be fetched or returned an unusable payload."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class MalformedItemError(IngestionError):
    """A raw item is not an object or has no usable identifier."""


class StoreError(IngestionError):
    """A write or query against the persistence layer failed."""


class UnknownSourceError(IngestionError):
    """A source name that is not present in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown source: {name}")
        self.name = name
