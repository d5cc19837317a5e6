"""Branch pointers for Gitlet.

Each branch is a file in .gitlet/branches/ holding the id of its tip
commit. .gitlet/HEAD holds the name of the current branch.
"""

from pathlib import Path
from typing import List

from loguru import logger

from gitlet.constants import BRANCHES_DIR, HEAD_FILE
from gitlet.errors import (
    BranchExists,
    BranchNotFound,
    CannotRemoveCurrent,
    InvalidBranchName,
)
from gitlet.storage.object_store import atomic_write


class BranchTable:
    """Named, mutable pointers into the commit graph.

    Attributes:
        branches_dir: Directory with one file per branch
        head_path: File naming the current branch
    """

    def __init__(self, gitlet_dir: Path) -> None:
        self.gitlet_dir = Path(gitlet_dir)
        self.branches_dir = self.gitlet_dir / BRANCHES_DIR
        self.head_path = self.gitlet_dir / HEAD_FILE

    def initialize(self, name: str, tip: str) -> None:
        """Create the first branch and make it current."""
        self.branches_dir.mkdir(parents=True, exist_ok=True)
        self.set_tip(name, tip)
        self.switch(name)

    def current(self) -> str:
        return self.head_path.read_text(encoding="utf-8").strip()

    def exists(self, name: str) -> bool:
        return self._valid_name(name) and (self.branches_dir / name).is_file()

    def names(self) -> List[str]:
        return sorted(
            p.name for p in self.branches_dir.iterdir() if p.is_file() and self._valid_name(p.name)
        )

    def tip(self, name: str) -> str:
        """Commit id the branch points to.

        Raises:
            BranchNotFound: If the branch does not exist
        """
        if not self.exists(name):
            raise BranchNotFound("No such branch exists.")
        return (self.branches_dir / name).read_text(encoding="utf-8").strip()

    def set_tip(self, name: str, commit_id: str) -> None:
        self._check_name(name)
        atomic_write(self.branches_dir / name, commit_id.encode("utf-8"))
        logger.debug(f"Branch {name} -> {commit_id[:8]}")

    def create(self, name: str, tip: str) -> None:
        """Create a branch pointing at tip.

        Raises:
            BranchExists: If the name is taken
        """
        self._check_name(name)
        if self.exists(name):
            raise BranchExists("A branch with that name already exists.")
        self.set_tip(name, tip)
        logger.info(f"Created branch {name} at {tip[:8]}")

    def remove(self, name: str) -> None:
        """Delete a branch pointer. The commits it pointed to are kept.

        Raises:
            BranchNotFound: If the branch does not exist
            CannotRemoveCurrent: If the branch is checked out
        """
        if not self.exists(name):
            raise BranchNotFound("A branch with that name does not exist.")
        if name == self.current():
            raise CannotRemoveCurrent("Cannot remove the current branch.")
        (self.branches_dir / name).unlink()
        logger.info(f"Removed branch {name}")

    def switch(self, name: str) -> None:
        """Point HEAD at an existing branch."""
        atomic_write(self.head_path, name.encode("utf-8"))

    @staticmethod
    def _valid_name(name: str) -> bool:
        return bool(name) and "/" not in name and "\\" not in name and not name.startswith(".")

    def _check_name(self, name: str) -> None:
        if not self._valid_name(name):
            raise InvalidBranchName(f"Invalid branch name: '{name}'")
