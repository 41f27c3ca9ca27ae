"""
Error types raised by the retrieval pipeline.

- ConfigurationError: invalid strategy id, empty term list, non-positive K, bad config values
- CompositionError: a topic that cannot be turned into a query
- CollaboratorIOError: index, run directory, topics file or lexical database unavailable

Synonym lookups that find nothing are not errors; they yield an empty set.
"""

from typing import Optional


class RetrievalError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(RetrievalError, ValueError):
    """Raised when a configuration value or call argument is invalid."""


class CompositionError(RetrievalError):
    """Raised when a query cannot be composed for a topic."""

    def __init__(self, message: str, topic_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.topic_id = topic_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.topic_id is not None:
            return f"[topic {self.topic_id}] {message}"
        return message


class CollaboratorIOError(RetrievalError, IOError):
    """Raised when an external collaborator cannot be opened."""
