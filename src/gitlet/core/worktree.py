"""Working tree access for Gitlet.

The working tree is every file under the workspace root except the
.gitlet/ directory. Paths handed to and returned from this module are
workspace-relative POSIX strings.
"""

from pathlib import Path, PurePosixPath
from typing import Dict, List, Union

from loguru import logger

from gitlet.constants import GITLET_DIR
from gitlet.errors import FileMissing, StagingError, UntrackedCollision
from gitlet.storage.object_store import ObjectStore, compute_hash


class WorkingTree:
    """Read, write and enumerate user files in the workspace.

    Attributes:
        workspace_root: Root directory of the workspace
        gitlet_dir: Path to the repository directory, excluded from listings
    """

    def __init__(self, workspace_root: Path) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self.gitlet_dir = self.workspace_root / GITLET_DIR

    def relative(self, path: Union[str, Path]) -> str:
        """Normalize a path to a workspace-relative POSIX string.

        Raises:
            StagingError: If the path lies outside the workspace or inside .gitlet/
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.workspace_root / candidate
        candidate = candidate.resolve()

        try:
            rel_path = candidate.relative_to(self.workspace_root)
        except ValueError:
            raise StagingError(
                f"Path {path} is outside workspace root {self.workspace_root}"
            )

        if not rel_path.parts or rel_path.parts[0] == GITLET_DIR:
            raise StagingError(f"Path {path} is not a working-tree file")

        return rel_path.as_posix()

    def exists(self, rel_path: str) -> bool:
        return (self.workspace_root / rel_path).is_file()

    def read(self, rel_path: str) -> bytes:
        """Read a working-tree file.

        Raises:
            FileMissing: If the file does not exist
        """
        abs_path = self.workspace_root / rel_path
        if not abs_path.is_file():
            raise FileMissing("File does not exist.")
        return abs_path.read_bytes()

    def write(self, rel_path: str, content: bytes) -> None:
        abs_path = self.workspace_root / rel_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        abs_path.write_bytes(content)

    def delete(self, rel_path: str) -> None:
        """Delete a file and any parent directories it leaves empty."""
        abs_path = self.workspace_root / rel_path
        abs_path.unlink(missing_ok=True)

        parent = abs_path.parent
        while parent != self.workspace_root and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def list_files(self) -> List[str]:
        """All working-tree files, sorted, excluding .gitlet/."""
        files = []
        for item in self.workspace_root.rglob("*"):
            if not item.is_file():
                continue
            rel_path = item.relative_to(self.workspace_root)
            if rel_path.parts[0] == GITLET_DIR:
                continue
            files.append(rel_path.as_posix())
        return sorted(files)

    def digest(self, rel_path: str) -> str:
        return compute_hash(self.read(rel_path))

    def untracked_collisions(
        self, current_tracked: Dict[str, str], target_tracked: Dict[str, str]
    ) -> List[str]:
        """Untracked files that switching to target_tracked would overwrite.

        An untracked file collides when the target tracks the same path with
        different content, when the target tracks a file at one of its parent
        directories, or when the target tracks a file beneath it.
        """
        target_dirs = {
            parent.as_posix()
            for target_path in target_tracked
            for parent in PurePosixPath(target_path).parents
            if parent.parts
        }

        collisions = []
        for rel_path in self.list_files():
            if rel_path in current_tracked:
                continue
            if rel_path in target_tracked:
                if self.digest(rel_path) != target_tracked[rel_path]:
                    collisions.append(rel_path)
            elif rel_path in target_dirs or any(
                parent.as_posix() in target_tracked
                for parent in PurePosixPath(rel_path).parents
            ):
                collisions.append(rel_path)
        return collisions

    def check_untracked(
        self, current_tracked: Dict[str, str], target_tracked: Dict[str, str]
    ) -> None:
        """Raise UntrackedCollision before any destructive write would happen."""
        collisions = self.untracked_collisions(current_tracked, target_tracked)
        if collisions:
            logger.debug(f"Untracked files in the way: {', '.join(collisions)}")
            raise UntrackedCollision(collisions)

    def checkout_snapshot(
        self,
        object_store: ObjectStore,
        target_tracked: Dict[str, str],
        current_tracked: Dict[str, str],
    ) -> None:
        """Make the working tree match target_tracked.

        Paths tracked by the current commit but absent from the target are
        deleted first, so a file may replace a directory of the same name and
        the reverse. Every target path is then written from its blob.
        Untracked files are left alone.
        """
        for rel_path in current_tracked:
            if rel_path not in target_tracked:
                self.delete(rel_path)

        for rel_path, blob_hash in target_tracked.items():
            self.write(rel_path, object_store.read_blob(blob_hash))

        logger.debug(f"Checked out {len(target_tracked)} file(s) into working tree")
