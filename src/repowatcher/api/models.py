"""Response models for the branch API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from repowatcher.models.branch import BranchState


class BranchInfo(BaseModel):
    """Public view of one branch."""

    name: str = Field(..., description="Branch name")
    last_update: datetime = Field(..., description="Author timestamp of the head commit")
    last_updated_by: str = Field("", description="Author of the head commit")
    last_updated_by_email: str = Field("", description="Author email of the head commit")
    commit: str = Field(..., description="Head commit SHA")
    changed: bool = Field(..., description="True while the snapshot is being rebuilt")
    snapshot_commit: Optional[str] = Field(None, description="Commit the cached snapshot reflects")

    @classmethod
    def from_state(cls, state: BranchState) -> "BranchInfo":
        return cls(
            name=state.name,
            last_update=state.last_update,
            last_updated_by=state.last_updated_by,
            last_updated_by_email=state.last_updated_by_email,
            commit=state.commit,
            changed=state.changed,
            snapshot_commit=state.snapshot_commit,
        )


class HealthStatus(BaseModel):
    status: str = Field("ok", description="Service status")
    branches: int = Field(0, description="Number of tracked branches")
