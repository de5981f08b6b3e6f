"""Shared fixtures for repowatcher tests."""

import tempfile
from pathlib import Path

import git
import pytest

from fakes import FakeRepositoryClient
from repowatcher.cache.store import BranchStateStore


@pytest.fixture
def fake_client() -> FakeRepositoryClient:
    """Fake repository client with no branches."""
    return FakeRepositoryClient()


@pytest.fixture
def store() -> BranchStateStore:
    """Empty branch state store."""
    return BranchStateStore()


@pytest.fixture
def origin_repo():
    """Create a temporary Git repository acting as the remote."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_path = Path(tmpdir) / "origin"
        repo = git.Repo.init(repo_path, initial_branch="main")

        # Configure git
        repo.config_writer().set_value("user", "name", "Test User").release()
        repo.config_writer().set_value("user", "email", "test@example.com").release()

        (repo_path / "README.md").write_text("# Test Project\n")
        repo.index.add(["README.md"])
        repo.index.commit("Initial commit")

        (repo_path / "src").mkdir()
        (repo_path / "src" / "main.py").write_text("def hello():\n    print('Hello, World!')\n")
        repo.index.add(["src/main.py"])
        repo.index.commit("Add main.py")

        yield repo

        repo.close()
