"""Base class for repository clients."""

from abc import ABC, abstractmethod
from typing import Iterator, List, Tuple

from repowatcher.models.branch import CommitMetadata, RemoteRef

#: One file of a tree: repository-relative path and raw contents.
TreeEntry = Tuple[str, bytes]


class BaseRepositoryClient(ABC):
    """Read-only view of a remote repository and its local mirror."""

    @abstractmethod
    def fetch_updates(self) -> None:
        """Bring the local mirror up to date with the remote.

        Raises:
            TransportError: If the remote cannot be reached
        """

    @abstractmethod
    def list_remote_refs(self) -> List[RemoteRef]:
        """List the references currently advertised by the remote.

        Raises:
            TransportError: If the remote cannot be reached
        """

    @abstractmethod
    def commit_metadata_for(self, hexsha: str) -> CommitMetadata:
        """Resolve author information for a commit in the local mirror.

        Raises:
            NotFoundError: If the commit is not present locally
        """

    @abstractmethod
    def file_tree_for(self, hexsha: str) -> Iterator[TreeEntry]:
        """Lazily yield every file of the commit's tree.

        The iterator is single-pass; request a new one for every build.

        Raises:
            NotFoundError: If the commit is not present locally
            TransportError: If an object cannot be read
        """

    @abstractmethod
    def read_file(self, hexsha: str, path: str) -> bytes:
        """Read one file from the commit's tree.

        Raises:
            NotFoundError: If the commit or path does not exist
        """

    def close(self) -> None:
        """Release any resources held by the client."""
