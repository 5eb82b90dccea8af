"""
Git repository adapter for source discovery.

This module wraps the subprocess calls to git used to enumerate a project's
files. Listing through `git ls-files` honours `.gitignore`, which keeps
virtualenvs, build output and vendored dependencies out of a scan without
having to know every ignore rule up front.
"""

from pathlib import Path
import subprocess
from typing import Callable, Generator


class GitClient:
    """
    Client for interacting with Git repositories.

    Attributes:
        root: The root path of the Git repository this client operates on.
        cmd: The `git ls-files` invocation used to list tracked and untracked,
            non-ignored files.
    """

    def __init__(
        self,
        root: Path,
        run_factory: Callable[..., subprocess.CompletedProcess] | None = None,
        popen_factory: Callable[..., subprocess.Popen] | None = None,
    ):
        """
        Initialize a GitClient for the specified repository root.

        Args:
            root: The root directory path of the Git repository.
            run_factory: Replacement for `subprocess.run` (tests).
            popen_factory: Replacement for `subprocess.Popen` (tests).
        """
        self.root = root
        self.cmd = ["git", "ls-files", "--cached", "--others", "--exclude-standard"]
        self._run = run_factory or subprocess.run
        self._popen = popen_factory or subprocess.Popen

    def is_repo(self) -> bool:
        """
        Check if the root path is inside a Git working tree.

        Returns:
            bool: True if `git rev-parse --is-inside-work-tree` succeeds. False if
                it fails or git is not installed.
        """
        try:
            self._run(
                ["git", "rev-parse", "--is-inside-work-tree"],
                cwd=self.root,
                text=True,
                check=True,  # This triggers except block
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def stream_file_paths(self) -> Generator[Path, None, None]:
        """
        Lazily yield file paths from the Git index and working tree.

        Yields:
            Path: A path relative to the repository root for each listed file.
        """

        with self._create_subprocess(self.cmd) as process:
            if process.stdout:
                for p in process.stdout:
                    stripped = p.strip()
                    if stripped:
                        yield Path(stripped)

            process.wait()

    def _create_subprocess(self, cmd: list[str]) -> subprocess.Popen[str]:
        return self._popen(
            cmd,
            cwd=self.root,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            bufsize=1,
        )
