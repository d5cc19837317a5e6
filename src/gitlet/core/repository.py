"""The repository context for Gitlet.

A Repository bundles the object store, commit graph, branch table,
staging area and working tree of one workspace. Every version-control
operation is a method on it; nothing is held in module-level state, so
several repositories can be open in the same process.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

from loguru import logger

from gitlet.constants import (
    BRANCHES_DIR,
    COMMITS_DIR,
    DEFAULT_BRANCH,
    GITLET_DIR,
    OBJECTS_DIR,
)
from gitlet.core.branches import BranchTable
from gitlet.core.merge import MergeEngine, MergeResult
from gitlet.core.staging import StagingArea
from gitlet.core.worktree import WorkingTree
from gitlet.errors import (
    AlreadyOnBranch,
    FileNotInCommit,
    NotARepository,
    NothingToCommit,
    ObjectNotFound,
    RepositoryExists,
)
from gitlet.storage import Commit, CommitGraph, MetadataDB, ObjectStore


@dataclass
class StatusReport:
    """Snapshot of branch, staging and working-tree state for display.

    Attributes:
        current_branch: Name of the checked-out branch
        branches: All branch names, sorted
        staged: Paths staged for addition
        removed: Paths staged for removal
        unstaged: Path -> "modified" or "deleted" for changes not staged
        untracked: Working-tree files neither tracked nor staged
    """

    current_branch: str
    branches: List[str]
    staged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    unstaged: Dict[str, str] = field(default_factory=dict)
    untracked: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.removed or self.unstaged or self.untracked)


class Repository:
    """A Gitlet repository rooted at a workspace directory.

    Attributes:
        workspace_root: Root directory of the workspace
        gitlet_dir: Path to .gitlet
        object_store: Blob storage
        metadata_db: Commit index (opened on construction)
        graph: Commit graph
        branches: Branch pointers and HEAD
        worktree: Working-tree file access
        staging: Add-set and remove-set

    Example:
        >>> repo = Repository.init(Path("project"))
        >>> repo.stage_add("notes.txt")
        >>> repo.commit("Add notes")
    """

    def __init__(self, workspace_root: Path) -> None:
        """Open an existing repository.

        An empty or missing commit index is rebuilt from the commit files.

        Raises:
            NotARepository: If workspace_root has no .gitlet directory
            DatabaseError: If the commit index has an unsupported schema
        """
        self.workspace_root = Path(workspace_root).resolve()
        self.gitlet_dir = self.workspace_root / GITLET_DIR

        if not self.gitlet_dir.is_dir():
            raise NotARepository("Not in an initialized Gitlet directory.")

        self.object_store = ObjectStore(self.gitlet_dir)
        self.metadata_db = MetadataDB(self.gitlet_dir)
        self.metadata_db.open()
        self.metadata_db.init_schema()
        self.graph = CommitGraph(self.gitlet_dir, self.metadata_db)
        self.branches = BranchTable(self.gitlet_dir)
        self.worktree = WorkingTree(self.workspace_root)
        self.staging = StagingArea(self.gitlet_dir, self.object_store, self.worktree)

        if self.metadata_db.count_commits() == 0 and next(self.graph.iter_commit_ids(), None):
            logger.warning("Commit index is empty, rebuilding it")
            self.reindex()

    @classmethod
    def init(cls, workspace_root: Path) -> "Repository":
        """Create a repository with a root commit and a master branch.

        Raises:
            RepositoryExists: If .gitlet already exists
        """
        gitlet_dir = Path(workspace_root) / GITLET_DIR
        if gitlet_dir.exists():
            raise RepositoryExists(
                "A Gitlet version-control system already exists in the current directory."
            )

        gitlet_dir.mkdir(parents=True)
        for sub_dir in (OBJECTS_DIR, COMMITS_DIR, BRANCHES_DIR):
            (gitlet_dir / sub_dir).mkdir()

        repo = cls(workspace_root)
        root_id = repo.graph.write_commit(Commit.root())
        repo.branches.initialize(DEFAULT_BRANCH, root_id)
        repo.staging.clear()
        logger.info(f"Initialized repository in {repo.gitlet_dir}")
        return repo

    def close(self) -> None:
        self.metadata_db.close()

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # Read-only accessors

    @property
    def current_branch(self) -> str:
        return self.branches.current()

    @property
    def head_id(self) -> str:
        return self.branches.tip(self.current_branch)

    @property
    def head_commit(self) -> Commit:
        return self.graph.read_commit(self.head_id)

    def tracked_files(self, commit_ref: Optional[str] = None) -> Dict[str, str]:
        """Tracked mapping of a commit (HEAD by default)."""
        if commit_ref is None:
            return dict(self.head_commit.tracked)
        return dict(self.graph.read_commit(self.find_by_prefix(commit_ref)).tracked)

    def staged_additions(self) -> Dict[str, str]:
        return self.staging.staged_additions()

    def staged_removals(self) -> Set[str]:
        return self.staging.staged_removals()

    def branch_names(self) -> List[str]:
        return self.branches.names()

    def find_by_prefix(self, prefix: str) -> str:
        return self.graph.find_by_prefix(prefix)

    def ancestors_of(self, commit_ref: str) -> Set[str]:
        return self.graph.ancestors_of(self.find_by_prefix(commit_ref))

    # Staging

    def stage_add(self, path: Union[str, Path]) -> Optional[str]:
        return self.staging.stage_add(str(path), self.head_commit.tracked)

    def stage_remove(self, path: Union[str, Path]) -> None:
        self.staging.stage_remove(str(path), self.head_commit.tracked)

    # Commits

    def commit(self, message: str, extra_parent: Optional[str] = None) -> str:
        """Record the staged changes as a new commit on the current branch.

        Args:
            message: Commit message
            extra_parent: Second parent, making this a merge commit

        Returns:
            Id of the new commit

        Raises:
            NothingToCommit: If message is empty, or nothing is staged and
                this is not a merge commit
        """
        if not message or not message.strip():
            raise NothingToCommit("Please enter a commit message.")

        additions = self.staging.staged_additions()
        removals = self.staging.staged_removals()
        if not additions and not removals and extra_parent is None:
            raise NothingToCommit("No changes added to the commit.")

        head_id = self.head_id
        tracked = {
            path: blob_hash
            for path, blob_hash in self.graph.read_commit(head_id).tracked.items()
            if path not in removals
        }
        tracked.update(additions)

        commit = Commit.create(message, head_id, tracked, second_parent=extra_parent)
        commit_id = self.graph.write_commit(commit)
        self.branches.set_tip(self.current_branch, commit_id)
        self.staging.clear()

        logger.info(
            f"Committed {commit_id[:8]} on {self.current_branch} "
            f"(+{len(additions)} -{len(removals)})"
        )
        return commit_id

    # Branches

    def create_branch(self, name: str) -> None:
        self.branches.create(name, self.head_id)

    def remove_branch(self, name: str) -> None:
        self.branches.remove(name)

    def checkout_branch(self, name: str) -> None:
        """Switch to another branch, replacing the tracked working-tree files.

        Raises:
            BranchNotFound: If the branch does not exist
            AlreadyOnBranch: If the branch is already checked out
            UntrackedCollision: If an untracked file would be overwritten
        """
        target_id = self.branches.tip(name)
        if name == self.current_branch:
            raise AlreadyOnBranch("No need to checkout the current branch.")

        current = self.head_commit.tracked
        target = self.graph.read_commit(target_id).tracked
        self.worktree.check_untracked(current, target)

        self.worktree.checkout_snapshot(self.object_store, target, current)
        self.branches.switch(name)
        self.staging.clear()
        logger.info(f"Switched to branch {name}")

    def checkout_path_from_commit(
        self, commit_ref: Optional[str], path: Union[str, Path]
    ) -> None:
        """Overwrite one working-tree file with its version in a commit.

        Args:
            commit_ref: Commit id or unique prefix; None means HEAD
            path: File to restore

        Raises:
            AmbiguousOrMissing: If commit_ref does not resolve
            FileNotInCommit: If the commit does not track path
        """
        commit_id = self.head_id if commit_ref is None else self.find_by_prefix(commit_ref)
        tracked = self.graph.read_commit(commit_id).tracked
        rel_path = self.worktree.relative(path)

        if rel_path not in tracked:
            raise FileNotInCommit("File does not exist in that commit.")

        self.worktree.write(rel_path, self.object_store.read_blob(tracked[rel_path]))
        logger.debug(f"Restored {rel_path} from {commit_id[:8]}")

    def reset_to_commit(self, commit_ref: str) -> str:
        """Move the current branch to a commit and check out its files.

        Returns:
            The full id of the commit reset to

        Raises:
            AmbiguousOrMissing: If commit_ref does not resolve
            UntrackedCollision: If an untracked file would be overwritten
        """
        commit_id = self.find_by_prefix(commit_ref)
        current = self.head_commit.tracked
        target = self.graph.read_commit(commit_id).tracked
        self.worktree.check_untracked(current, target)

        self.worktree.checkout_snapshot(self.object_store, target, current)
        self.branches.set_tip(self.current_branch, commit_id)
        self.staging.clear()
        logger.info(f"Reset {self.current_branch} to {commit_id[:8]}")
        return commit_id

    def merge(self, branch_name: str) -> MergeResult:
        return MergeEngine(self).merge(branch_name)

    # History

    def log(self, limit: Optional[int] = None) -> Iterator[Tuple[str, Commit]]:
        """First-parent history from HEAD, newest first."""
        for count, entry in enumerate(self.graph.first_parent_history(self.head_id)):
            if limit is not None and count >= limit:
                return
            yield entry

    def global_log(self) -> List[Tuple[str, Commit]]:
        """Every commit ever made, newest first."""
        return [
            (row["commit_hash"], self.graph.read_commit(row["commit_hash"]))
            for row in self.metadata_db.get_commit_history()
        ]

    def find(self, message: str) -> List[str]:
        """Ids of all commits with exactly this message.

        Raises:
            ObjectNotFound: If no commit has the message
        """
        matches = self.metadata_db.find_by_message(message)
        if not matches:
            raise ObjectNotFound("Found no commit with that message.")
        return matches

    def reindex(self) -> int:
        """Rebuild the metadata database from the commit files.

        Returns:
            Number of commits indexed
        """
        self.metadata_db.clear()
        count = 0
        for commit_id, commit in self.graph.all_commits():
            self.metadata_db.index_commit(commit_id, commit)
            count += 1
        logger.info(f"Reindexed {count} commit(s)")
        return count

    def status(self) -> StatusReport:
        """Collect branch, staging and working-tree state."""
        tracked = self.head_commit.tracked
        additions = self.staging.staged_additions()
        removals = self.staging.staged_removals()
        working = self.worktree.list_files()
        working_set = set(working)

        unstaged: Dict[str, str] = {}
        for path in working:
            digest = self.worktree.digest(path)
            if path in additions:
                if digest != additions[path]:
                    unstaged[path] = "modified"
            elif path in tracked and path not in removals and digest != tracked[path]:
                unstaged[path] = "modified"

        for path in set(tracked) | set(additions):
            if path not in working_set and path not in removals:
                unstaged[path] = "deleted"

        untracked = [
            path
            for path in working
            if path not in additions and (path not in tracked or path in removals)
        ]

        return StatusReport(
            current_branch=self.current_branch,
            branches=self.branches.names(),
            staged=list(additions),
            removed=sorted(removals),
            unstaged=dict(sorted(unstaged.items())),
            untracked=untracked,
        )
