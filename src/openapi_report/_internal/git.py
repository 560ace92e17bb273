"""Git working-tree access for snapshot capture."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """Raised when a git command fails."""


class GitClient(Protocol):
    def repository_root(self) -> Path: ...

    def current_ref(self) -> str: ...

    def checkout(self, ref: str) -> None: ...


class ProcessGitClient:
    """GitClient backed by the ``git`` executable."""

    def __init__(self, working_dir: Optional[Path] = None):
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()

    def repository_root(self) -> Path:
        return Path(self._run(["rev-parse", "--show-toplevel"]).strip())

    def current_ref(self) -> str:
        """Current branch name, or the commit SHA when HEAD is detached."""
        branch = self._run(["rev-parse", "--abbrev-ref", "HEAD"]).strip()
        if branch.upper() != "HEAD":
            return branch
        return self._run(["rev-parse", "HEAD"]).strip()

    def checkout(self, ref: str) -> None:
        logger.info("git checkout %s", ref)
        self._run(["checkout", ref])

    def _run(self, args: List[str]) -> str:
        logger.debug("Running git %s in %s", " ".join(args), self.working_dir)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found") from e

        if result.returncode != 0:
            message = result.stderr if result.stderr.strip() else result.stdout
            raise GitError(f"Git command failed: {message}".strip())
        return result.stdout
