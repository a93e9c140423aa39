"""
Git repository management and porcelain helpers.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Union
from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandError

from .models import PathResolutionFailure, RepositoryError


logger = logging.getLogger(__name__)


GIT_SUFFIX = ".git"


class GitManager:
    """Manages Git operations for a single repository."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Bind to the repository containing ``repo_path`` (default: cwd)."""
        self.repo_path = Path(repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None

    def _to_repo_relative_str(self, p: Union[str, Path]) -> str:
        """Pathspec for git: relative to the working directory when inside it, else unchanged."""
        base = self.working_dir
        pp = Path(p)
        try:
            if pp.is_absolute():
                return pp.resolve().relative_to(base.resolve()).as_posix()
            return pp.as_posix()
        except ValueError:
            s = pp.as_posix()
            logger.debug(f"Path '{s}' not under repo root '{base}'; passing as-is")
            return s

    @property
    def repo(self) -> Repo:
        """Repository handle, discovered on first use."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_dir)

    def _discover_repository(self) -> Repo:
        """Open the nearest repository at or above ``repo_path``."""
        search_path = self.repo_path

        logger.debug(f"Discovering repository in: {search_path}")
        while search_path != search_path.parent:
            try:
                repo = Repo(search_path)
                logger.info(f"Found Git repository at: {search_path}")
                return repo
            except (InvalidGitRepositoryError, NoSuchPathError):
                search_path = search_path.parent

        raise RepositoryError(
            f"No Git repository found at {self.repo_path} or any parent directory"
        )

    def close(self) -> None:
        """Release the underlying repository handle."""
        if self._repo is not None:
            self._repo.close()
            self._repo = None

    # --- Branches and remotes ---
    def get_current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return None
        except Exception as e:
            logger.error(f"Error getting current branch: {e}")
            raise RepositoryError(f"Could not determine current branch: {e}") from e

    def _head_name(self) -> str:
        return self.get_current_branch() or "HEAD"

    def get_branch_names(self) -> List[str]:
        """Return distinct, sorted branch names.

        Remote-tracking branches contribute their name without the remote
        prefix, so ``origin/main`` and ``main`` are listed once.
        """
        try:
            names = {h.name for h in self.repo.heads}
            for remote in self.repo.remotes:
                for ref in remote.refs:
                    if ref.remote_head != "HEAD":
                        names.add(ref.remote_head)
            return sorted(names)
        except Exception as e:
            logger.error(f"Error listing branches: {e}")
            raise RepositoryError(f"Failed to list branches: {e}") from e

    def get_remote_names(self) -> List[str]:
        """Return distinct, sorted remote names."""
        try:
            return sorted({r.name for r in self.repo.remotes})
        except Exception as e:
            logger.error(f"Error listing remotes: {e}")
            raise RepositoryError(f"Failed to list remotes: {e}") from e

    def get_default_remote_name(self, preferred: str = "origin") -> Optional[str]:
        """Return ``preferred`` if configured, else the first remote by name, else None."""
        names = self.get_remote_names()
        if preferred in names:
            return preferred
        return names[0] if names else None

    # --- Working tree helpers ---
    def get_full_path(self, file_path: Union[str, Path]) -> Path:
        """Resolve ``file_path`` against the working directory into an absolute path.

        Absolute input is only normalized. Symlinks are not resolved.
        """
        if file_path is None or str(file_path).strip() == "":
            raise PathResolutionFailure("Path must not be empty")
        try:
            raw = os.fspath(file_path)
            if "\x00" in raw:
                raise ValueError("embedded null character")
            if os.path.isabs(raw):
                return Path(os.path.normpath(raw))
            return Path(os.path.normpath(os.path.join(self.working_dir, raw)))
        except (TypeError, ValueError) as e:
            raise PathResolutionFailure(f"Invalid path {file_path!r}: {e}") from e

    def revert_file_changes(self, *file_paths: Union[str, Path]) -> None:
        """Discard local modifications of exactly the given paths.

        The paths are force-checked-out from the tip of the current branch;
        every other file is left untouched.
        """
        if not file_paths:
            return
        rel_paths = [self._to_repo_relative_str(self.get_full_path(p)) for p in file_paths]
        head = self._head_name()
        try:
            self.repo.git.checkout("-f", head, "--", *rel_paths)
            logger.info(f"Reverted {len(rel_paths)} path(s) to {head}")
        except GitCommandError as e:
            logger.error(f"Failed to revert {rel_paths} in {self.working_dir}: {e}")
            raise RepositoryError(f"Failed to revert paths: {e}") from e

    def checkout_branch(self, branch_name: str) -> None:
        """Switch the working tree to ``branch_name``."""
        try:
            self.repo.git.checkout(branch_name)
            logger.info(f"Checked out branch: {branch_name}")
        except Exception as e:
            logger.error(f"Error checking out branch {branch_name}: {e}")
            raise RepositoryError(f"Failed to checkout branch {branch_name}: {e}")

    def stage(self, file_path: Union[str, Path]) -> None:
        """Stage a path in the index."""
        rel = self._to_repo_relative_str(self.get_full_path(file_path))
        try:
            # pathspec after "--" so names starting with "-" are not options
            self.repo.git.add("--", rel)
        except GitCommandError as e:
            logger.error(f"Failed to stage {rel} in {self.working_dir}: {e}")
            raise RepositoryError(f"Failed to stage {rel}: {e}") from e

    def remove(self, file_path: Union[str, Path]) -> None:
        """Remove a path from the index and the working tree."""
        rel = self._to_repo_relative_str(self.get_full_path(file_path))
        try:
            self.repo.git.rm("--", rel)
        except GitCommandError as e:
            logger.error(f"Failed to remove {rel} in {self.working_dir}: {e}")
            raise RepositoryError(f"Failed to remove {rel}: {e}") from e

    # --- Hosting URLs ---
    def get_repo_url(self, remote_name: str = "origin") -> Optional[str]:
        """Return the remote's configured URL without a trailing ``.git``."""
        try:
            url = self.repo.config_reader().get_value(f'remote "{remote_name}"', "url", "")
        except Exception as e:
            logger.debug(f"Error reading URL of remote {remote_name}: {e}")
            return None
        url = str(url).strip()
        if not url:
            return None
        if url.endswith(GIT_SUFFIX):
            url = url[: -len(GIT_SUFFIX)]
        return url

    def get_commit_url(self, commit_sha: Optional[str] = None, remote_name: str = "origin") -> Optional[str]:
        """Return the web URL of a commit (HEAD by default), or None without a remote URL."""
        base = self.get_repo_url(remote_name)
        if base is None:
            return None
        try:
            sha = self.repo.commit(commit_sha or "HEAD").hexsha
        except Exception as e:
            logger.error(f"Error resolving commit {commit_sha}: {e}")
            raise RepositoryError(f"Could not resolve commit {commit_sha}: {e}") from e
        return f"{base}/commit/{sha}"
