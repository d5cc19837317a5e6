"""Three-way merge of two branches.

A merge runs through four stages: validate the inputs, find the split
point of the two branch tips, either fast-forward or merge every path
three ways, then record a merge commit. Conflicting paths are written to
the working tree with conflict markers and committed as-is; they are
reported on the result rather than raised.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from loguru import logger

from gitlet.constants import CONFLICT_END, CONFLICT_HEAD, CONFLICT_SEPARATOR, MERGE_MESSAGE
from gitlet.errors import BranchNotFound, MergeWithSelf, UncommittedChanges

if TYPE_CHECKING:
    from gitlet.core.repository import Repository


class MergeStatus(Enum):
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    MERGED = "merged"


class MergeAction(Enum):
    KEEP = "keep"
    TAKE_GIVEN = "take_given"
    DELETE = "delete"
    CONFLICT = "conflict"


@dataclass
class MergeResult:
    """Outcome of a merge.

    Attributes:
        status: Which path the merge took
        commit_id: The new merge commit, or the fast-forwarded tip
        split_point: Lowest common ancestor of the two tips (three-way merges only)
        conflicts: Paths written with conflict markers
    """

    status: MergeStatus
    commit_id: Optional[str] = None
    split_point: Optional[str] = None
    conflicts: List[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def classify_path(
    split: Optional[str], head: Optional[str], given: Optional[str]
) -> MergeAction:
    """Decide what a merge does with one path.

    Arguments are the path's blob hashes in the split point, the current
    branch tip and the given branch tip; None means the path is absent.
    """
    if given is not None:
        if split is None and head is not None and head != given:
            return MergeAction.CONFLICT
        if split is not None and head is None and given != split:
            return MergeAction.CONFLICT
        if split is not None and head is not None and len({split, head, given}) == 3:
            return MergeAction.CONFLICT
        if given == split or given == head:
            return MergeAction.KEEP
        return MergeAction.TAKE_GIVEN

    if split is not None and head is not None:
        # Deleted on the given branch.
        return MergeAction.DELETE if split == head else MergeAction.CONFLICT

    return MergeAction.KEEP


def conflict_content(head: Optional[bytes], given: Optional[bytes]) -> bytes:
    """Both versions of a file between conflict markers; a missing side is empty."""
    return b"".join(
        [
            CONFLICT_HEAD.encode("utf-8"),
            head or b"",
            CONFLICT_SEPARATOR.encode("utf-8"),
            given or b"",
            CONFLICT_END.encode("utf-8"),
        ]
    )


class MergeEngine:
    """Merges a named branch into the current branch of a repository."""

    def __init__(self, repo: "Repository") -> None:
        self.repo = repo

    def merge(self, given_branch: str) -> MergeResult:
        """Merge given_branch into the current branch.

        Raises:
            UncommittedChanges: If the staging area is not empty
            BranchNotFound: If given_branch does not exist
            MergeWithSelf: If given_branch is the current branch
            UntrackedCollision: If an untracked file would be overwritten
        """
        repo = self.repo
        current_branch = repo.current_branch

        if not repo.staging.is_empty():
            raise UncommittedChanges("You have uncommitted changes.")
        if not repo.branches.exists(given_branch):
            raise BranchNotFound("A branch with that name does not exist.")
        if given_branch == current_branch:
            raise MergeWithSelf("Cannot merge a branch with itself.")

        head_id = repo.head_id
        given_id = repo.branches.tip(given_branch)
        head = repo.graph.read_commit(head_id)
        given = repo.graph.read_commit(given_id)

        repo.worktree.check_untracked(head.tracked, given.tracked)

        if given_id == head_id or given_id in repo.graph.ancestors_of(head_id):
            logger.info(f"{given_branch} is already merged into {current_branch}")
            return MergeResult(MergeStatus.UP_TO_DATE, commit_id=head_id)

        if head_id in repo.graph.ancestors_of(given_id):
            repo.worktree.checkout_snapshot(repo.object_store, given.tracked, head.tracked)
            repo.branches.set_tip(current_branch, given_id)
            repo.staging.clear()
            logger.info(f"Fast-forwarded {current_branch} to {given_id[:8]}")
            return MergeResult(MergeStatus.FAST_FORWARD, commit_id=given_id)

        split_id = repo.graph.lowest_common_ancestor(head_id, given_id)
        split = repo.graph.read_commit(split_id)
        logger.debug(f"Split point of {head_id[:8]} and {given_id[:8]} is {split_id[:8]}")

        conflicts = self._merge_paths(split.tracked, head.tracked, given.tracked)

        commit_id = repo.commit(
            MERGE_MESSAGE.format(given=given_branch, current=current_branch),
            extra_parent=given_id,
        )

        if conflicts:
            logger.warning(f"Merge conflict in {len(conflicts)} file(s): {', '.join(conflicts)}")

        return MergeResult(
            MergeStatus.MERGED,
            commit_id=commit_id,
            split_point=split_id,
            conflicts=conflicts,
        )

    def _merge_paths(self, split: dict, head: dict, given: dict) -> List[str]:
        """Apply the per-path decisions to the working tree and staging area."""
        repo = self.repo
        conflicts = []

        for path in sorted(split.keys() | head.keys() | given.keys()):
            action = classify_path(split.get(path), head.get(path), given.get(path))

            if action is MergeAction.TAKE_GIVEN:
                repo.worktree.write(path, repo.object_store.read_blob(given[path]))
                repo.staging.stage_add(path, head)
            elif action is MergeAction.DELETE:
                repo.staging.stage_remove(path, head)
            elif action is MergeAction.CONFLICT:
                head_content = repo.object_store.read_blob(head[path]) if path in head else None
                given_content = repo.object_store.read_blob(given[path]) if path in given else None
                repo.worktree.write(path, conflict_content(head_content, given_content))
                repo.staging.stage_add(path, head)
                conflicts.append(path)

        return conflicts
