"""Abstract Base Class for Content Store Clients.

Defines the three operations the mutation and schema core relies on.
Implementations own transport, authentication and retry policy.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from ..mutations.models import MutationOptions


@dataclass
class CommitResult:
    """What the store reports back for one committed transaction."""

    transaction_id: str
    results: list[dict[str, Any]] = field(default_factory=list)
    document_ids: list[str] = field(default_factory=list)


class StoreClient(ABC):
    """Abstract base class for content store clients.

    All store implementations (remote HTTP API, in-memory) must implement
    this interface so the transaction engine stays transport agnostic.
    """

    @property
    @abstractmethod
    def store_type(self) -> str:
        """Return the backend type identifier (e.g., 'http', 'memory')."""
        pass

    @property
    @abstractmethod
    def project_id(self) -> str:
        pass

    @property
    @abstractmethod
    def dataset(self) -> str:
        pass

    @abstractmethod
    async def fetch_document(self, document_id: str) -> dict[str, Any] | None:
        """Fetch a single document by id.

        Returns:
            The document, or None when it does not exist.

        Raises:
            StoreError: If the store could not be queried.
        """
        pass

    @abstractmethod
    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> Any:
        """Run a query and return its JSON result."""
        pass

    @abstractmethod
    async def commit_transaction(
        self, mutations: list[dict[str, Any]], options: MutationOptions
    ) -> CommitResult:
        """Commit wire-format mutations as one atomic unit.

        Raises:
            ConcurrencyConflict: A revision guard did not match.
            StoreError: The store rejected or failed the transaction.
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
