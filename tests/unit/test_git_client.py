"""Tests for the GitPython repository client against real repositories."""

import base64
from pathlib import Path

import git
import pytest

from repowatcher.errors import NotFoundError, TransportError
from repowatcher.models.config import WatcherSettings
from repowatcher.repository.git_client import GitRepositoryClient, auth_environment


@pytest.fixture
def settings(origin_repo, tmp_path):
    return WatcherSettings(
        repo_name="origin",
        repo_url=str(origin_repo.working_tree_dir),
        clone_dir=tmp_path / "mirrors",
        _env_file=None,
    )


@pytest.fixture
def client(settings):
    client = GitRepositoryClient.open(settings)
    yield client
    client.close()


def commit_file(repo, path: str, content: str, message: str):
    full = Path(repo.working_tree_dir) / path
    full.parent.mkdir(parents=True, exist_ok=True)
    full.write_text(content)
    repo.index.add([path])
    return repo.index.commit(message)


def test_open_clones_bare_mirror(client, settings):
    """The remote is mirrored into <clone_dir>/<repo_name>.git."""
    assert settings.mirror_path.exists()
    assert client.repo.bare


def test_open_reuses_existing_mirror(client, settings):
    """Opening twice reuses the mirror instead of cloning again."""
    second = GitRepositoryClient.open(settings)
    try:
        assert Path(second.repo.git_dir) == Path(client.repo.git_dir)
    finally:
        second.close()


def test_open_repoints_mirror_when_url_changes(client, settings, tmp_path):
    """Reopening with a new repo_url polls the new remote, not the old one."""
    other_path = tmp_path / "other"
    other = git.Repo.init(other_path, initial_branch="other-main")
    other.config_writer().set_value("user", "name", "Test User").release()
    other.config_writer().set_value("user", "email", "test@example.com").release()
    commit_file(other, "OTHER.md", "other\n", "Other commit")

    moved = settings.model_copy(update={"repo_url": str(other_path)})
    reopened = GitRepositoryClient.open(moved)
    try:
        assert reopened.repo.remotes.origin.url == str(other_path)
        refs = [ref.name for ref in reopened.list_remote_refs() if ref.is_branch]
        assert refs == ["refs/heads/other-main"]
    finally:
        reopened.close()
        other.close()


def test_open_unreachable_remote_raises(tmp_path):
    settings = WatcherSettings(
        repo_name="missing",
        repo_url=str(tmp_path / "does-not-exist"),
        clone_dir=tmp_path / "mirrors",
        _env_file=None,
    )

    with pytest.raises(TransportError, match="Failed to clone"):
        GitRepositoryClient.open(settings)


def test_list_remote_refs(client, origin_repo):
    """Branch refs are listed with their head commits."""
    origin_repo.create_head("dev")

    refs = {ref.name: ref for ref in client.list_remote_refs()}

    head = origin_repo.head.commit.hexsha
    assert refs["refs/heads/main"].hexsha == head
    assert refs["refs/heads/main"].is_branch
    assert refs["refs/heads/dev"].short_name == "dev"
    assert not refs["HEAD"].is_branch


def test_fetch_updates_brings_new_commits(client, origin_repo):
    """New remote commits are resolvable after a fetch."""
    new_commit = commit_file(origin_repo, "CHANGELOG.md", "v2\n", "Add changelog")

    with pytest.raises(NotFoundError):
        client.commit_metadata_for(new_commit.hexsha)

    client.fetch_updates()

    metadata = client.commit_metadata_for(new_commit.hexsha)
    assert metadata.hexsha == new_commit.hexsha
    assert metadata.author_name == "Test User"
    assert metadata.author_email == "test@example.com"
    assert metadata.authored_at.tzinfo is not None


def test_commit_metadata_for_unknown_commit(client):
    with pytest.raises(NotFoundError):
        client.commit_metadata_for("0" * 40)


def test_file_tree_for(client, origin_repo):
    """The tree yields every file with its contents."""
    head = origin_repo.head.commit.hexsha

    files = dict(client.file_tree_for(head))

    assert files == {
        "README.md": b"# Test Project\n",
        "src/main.py": b"def hello():\n    print('Hello, World!')\n",
    }


def test_file_tree_for_unknown_commit(client):
    with pytest.raises(NotFoundError):
        list(client.file_tree_for("0" * 40))


def test_read_file(client, origin_repo):
    head = origin_repo.head.commit.hexsha

    assert client.read_file(head, "README.md") == b"# Test Project\n"

    with pytest.raises(NotFoundError):
        client.read_file(head, "missing.txt")
    with pytest.raises(NotFoundError):
        client.read_file(head, "src")


def test_fetch_after_remote_removed_raises(client, origin_repo):
    """A vanished remote surfaces as TransportError."""
    client.repo.git.remote("set-url", "origin", "/nonexistent/remote/path")

    with pytest.raises(TransportError):
        client.fetch_updates()
    with pytest.raises(TransportError):
        client.list_remote_refs()


def test_auth_environment():
    """The token is passed as a basic-auth header through git config env."""
    env = auth_environment("s3cret")

    assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    encoded = env["GIT_CONFIG_VALUE_0"].split("Basic ", 1)[1]
    assert base64.b64decode(encoded) == b"token:s3cret"
    assert auth_environment(None) == {}
