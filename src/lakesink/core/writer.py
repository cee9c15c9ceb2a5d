"""
Table writer interface for committing rows to a versioned table store.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class TableWriter(ABC):
    """
    Abstract base class for table writers.

    A table writer is bound to one schema. Rows appended with ``write`` stay
    pending until ``flush`` durably commits them.
    """

    @abstractmethod
    def update_schema(self, schema: Dict[str, Any]) -> bool:
        """
        Inform the writer that the active schema changed.

        A writer that can evolve in place does so and returns False.

        Args:
            schema: The new parsed schema

        Returns:
            True if this writer cannot accept rows for ``schema`` and must
            be replaced by a new instance
        """
        pass

    @abstractmethod
    def write(self, row: Dict[str, Any]) -> None:
        """
        Append a row to the pending commit.

        Raises:
            Exception if the row cannot be appended
        """
        pass

    @abstractmethod
    def flush(self) -> bool:
        """
        Commit all rows written since the last successful flush.

        Returns:
            True if the commit succeeded, False otherwise

        Raises:
            Exception only for unexpected I/O failures
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the table writer name/identifier."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
