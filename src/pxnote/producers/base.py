"""
Base producer interface.

A producer is a pluggable source of records. The publisher keeps one producer
per kind and asks each of them for a complete list of records on every
rotation cycle.
"""

from abc import ABC, abstractmethod

from pxnote.records import Record, SourceType


class Producer(ABC):
    """Abstract base class for all record producers."""

    @property
    @abstractmethod
    def kind(self) -> SourceType:
        """Tag stamped on every record this producer returns."""

    @abstractmethod
    def fetch_index(self) -> list[Record]:
        """
        Retrieve every record from the content source.

        Must be safe to call once per rotation cycle, independently of other
        producers. Any failure is raised; partial results are never returned.

        Returns:
            Records ordered by page, then by position within the page
        """
