"""Data models for observed branch state."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotStatus(str, Enum):
    """Whether the cached snapshot matches the branch's last observed commit."""

    STALE = "stale"
    FRESH = "fresh"


class RemoteRef(BaseModel):
    """A reference advertised by the remote repository."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Full reference name, e.g. refs/heads/main")
    hexsha: str = Field(..., description="Commit SHA the reference points to")

    @property
    def is_branch(self) -> bool:
        return self.name.startswith("refs/heads/")

    @property
    def short_name(self) -> str:
        for prefix in ("refs/heads/", "refs/tags/", "refs/remotes/"):
            if self.name.startswith(prefix):
                return self.name[len(prefix):]
        return self.name


class CommitMetadata(BaseModel):
    """Author information for a single commit."""

    model_config = ConfigDict(frozen=True)

    hexsha: str = Field(..., description="Full commit SHA")
    authored_at: datetime = Field(..., description="Author timestamp of the commit")
    author_name: str = Field("", description="Author name")
    author_email: str = Field("", description="Author email")


class BranchObservation(BaseModel):
    """One branch as seen on the remote during a poll cycle."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Branch short name")
    commit: str = Field(..., description="Commit SHA at the branch head")
    last_update: datetime = Field(..., description="Author timestamp of the head commit")
    author_name: str = Field("", description="Author of the head commit")
    author_email: str = Field("", description="Author email of the head commit")

    @classmethod
    def from_commit(cls, name: str, metadata: CommitMetadata) -> "BranchObservation":
        return cls(
            name=name,
            commit=metadata.hexsha,
            last_update=metadata.authored_at,
            author_name=metadata.author_name,
            author_email=metadata.author_email,
        )


class BranchState(BaseModel):
    """Cached state for a single branch.

    Instances are immutable. The store replaces an entry as a whole, so a
    reader never sees a partially updated branch.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "main",
                "last_update": "2024-01-15T10:30:00Z",
                "commit": "abc123def456",
                "last_updated_by": "John Doe",
                "last_updated_by_email": "john@example.com",
                "status": "fresh",
                "snapshot_commit": "abc123def456",
                "generation": 3,
            }
        },
    )

    name: str = Field(..., description="Branch short name")
    last_update: datetime = Field(..., description="Author timestamp of the last observed commit")
    commit: str = Field(..., description="SHA of the last observed commit")
    last_updated_by: str = Field("", description="Author of the last observed commit")
    last_updated_by_email: str = Field("", description="Author email of the last observed commit")
    status: SnapshotStatus = Field(SnapshotStatus.STALE, description="Snapshot freshness")
    snapshot: Optional[bytes] = Field(None, description="Cached gzip archive of the branch tree", repr=False)
    snapshot_commit: Optional[str] = Field(None, description="Commit the cached snapshot was built from")
    generation: int = Field(1, description="Bumped each time the branch is flagged as changed")

    @property
    def changed(self) -> bool:
        """True while the snapshot still has to be rebuilt for ``commit``."""
        return self.status is SnapshotStatus.STALE

    @classmethod
    def from_observation(cls, observation: BranchObservation) -> "BranchState":
        return cls(
            name=observation.name,
            last_update=observation.last_update,
            commit=observation.commit,
            last_updated_by=observation.author_name,
            last_updated_by_email=observation.author_email,
        )
