"""GitPython-backed repository client operating on a bare mirror."""

import base64
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import git
import structlog
from git import Repo

from repowatcher.errors import NotFoundError, TransportError
from repowatcher.models.branch import CommitMetadata, RemoteRef
from repowatcher.models.config import WatcherSettings
from repowatcher.repository.base import BaseRepositoryClient, TreeEntry

logger = structlog.get_logger(__name__)

_MISSING_OBJECT_ERRORS = (git.BadName, git.BadObject, ValueError)


def auth_environment(token: Optional[str]) -> Dict[str, str]:
    """Build git environment variables carrying a basic-auth header.

    The header is injected through GIT_CONFIG_* variables so the token is
    never written to the mirror's config file.
    """
    if not token:
        return {}
    credentials = base64.b64encode(f"token:{token}".encode()).decode()
    return {
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": "http.extraHeader",
        "GIT_CONFIG_VALUE_0": f"Authorization: Basic {credentials}",
        "GIT_TERMINAL_PROMPT": "0",
    }


class GitRepositoryClient(BaseRepositoryClient):
    """Repository client for a single remote, mirrored into a bare repository."""

    def __init__(self, repo: Repo, env: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> None:
        """Initialize the client.

        Args:
            repo: GitPython repository object for the local mirror
            env: Extra environment for git commands (authentication)
            timeout: Seconds after which fetch and ls-remote are killed
        """
        self.repo = repo
        self.timeout = timeout
        if env:
            self.repo.git.update_environment(**env)

    @classmethod
    def open(cls, settings: WatcherSettings) -> "GitRepositoryClient":
        """Clone the configured remote as a mirror, or reuse an existing one.

        Args:
            settings: Watcher settings

        Returns:
            GitRepositoryClient for the mirror

        Raises:
            TransportError: If the clone fails
        """
        env = auth_environment(settings.token())
        path = Path(settings.mirror_path)

        if path.exists():
            try:
                repo = Repo(path)
            except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
                raise TransportError(f"Existing mirror is not a git repository: {path}") from e
            logger.info("reusing_mirror", path=str(path))
            origin = repo.remotes.origin
            if origin.url != settings.repo_url:
                logger.warning(
                    "mirror_remote_changed",
                    path=str(path),
                    old_url=origin.url,
                    new_url=settings.repo_url,
                )
                origin.set_url(settings.repo_url)
            client = cls(repo, env=env, timeout=settings.remote_timeout)
            client.fetch_updates()
            return client

        logger.info("cloning_repository", url=settings.repo_url, path=str(path))
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            repo = Repo.clone_from(settings.repo_url, path, env=env or None, mirror=True)
        except git.GitCommandError as e:
            raise TransportError(f"Failed to clone repository: {e}") from e

        return cls(repo, env=env, timeout=settings.remote_timeout)

    def fetch_updates(self) -> None:
        try:
            self.repo.git.fetch("origin", "--prune", kill_after_timeout=self.timeout)
        except git.GitCommandError as e:
            raise TransportError(f"Failed to fetch repository: {e}") from e

    def list_remote_refs(self) -> List[RemoteRef]:
        try:
            output = self.repo.git.ls_remote("origin", kill_after_timeout=self.timeout)
        except git.GitCommandError as e:
            raise TransportError(f"Failed to list remote references: {e}") from e

        refs = []
        for line in output.splitlines():
            hexsha, _, name = line.strip().partition("\t")
            if not name or name.endswith("^{}"):
                continue
            refs.append(RemoteRef(name=name, hexsha=hexsha))
        return refs

    def commit_metadata_for(self, hexsha: str) -> CommitMetadata:
        try:
            commit = self.repo.commit(hexsha)
            return CommitMetadata(
                hexsha=commit.hexsha,
                authored_at=commit.authored_datetime,
                author_name=commit.author.name or "",
                author_email=commit.author.email or "",
            )
        except _MISSING_OBJECT_ERRORS as e:
            raise NotFoundError(f"Commit not found: {hexsha}") from e

    def file_tree_for(self, hexsha: str) -> Iterator[TreeEntry]:
        try:
            tree = self.repo.commit(hexsha).tree
        except _MISSING_OBJECT_ERRORS as e:
            raise NotFoundError(f"Commit not found: {hexsha}") from e

        for item in tree.traverse():
            # submodules show up as "commit" entries
            if item.type != "blob":
                continue
            try:
                data = item.data_stream.read()
            except (ValueError, OSError, git.GitCommandError) as e:
                raise TransportError(f"Failed to read {item.path} at {hexsha}: {e}") from e
            yield item.path, data

    def read_file(self, hexsha: str, path: str) -> bytes:
        try:
            commit = self.repo.commit(hexsha)
        except _MISSING_OBJECT_ERRORS as e:
            raise NotFoundError(f"Commit not found: {hexsha}") from e

        try:
            blob = commit.tree / path
        except KeyError as e:
            raise NotFoundError(f"File not found: {path}") from e

        if blob.type != "blob":
            raise NotFoundError(f"Not a file: {path}")
        return blob.data_stream.read()

    def close(self) -> None:
        self.repo.close()
