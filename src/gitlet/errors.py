"""Exception hierarchy for Gitlet.

Every error carries a user-facing message. The CLI reports the message and
exits with a non-zero status; the object store is never left half-written
because objects are only ever added.
"""

from typing import List


class GitletError(Exception):
    """Base class for all Gitlet errors."""


class NotARepository(GitletError):
    """Raised when no .gitlet/ directory exists in the workspace."""


class RepositoryExists(GitletError):
    """Raised by init when a repository is already present."""


class ObjectNotFound(GitletError):
    """Raised when a blob or commit id cannot be resolved."""


class ObjectCorrupted(GitletError):
    """Raised when stored content no longer hashes to its id."""


class AmbiguousOrMissing(GitletError):
    """Raised when an abbreviated commit id matches zero or several commits."""

    def __init__(self, prefix: str, matches: int) -> None:
        self.prefix = prefix
        self.matches = matches
        if matches == 0:
            message = "No commit with that id exists."
        else:
            message = f"Commit id prefix '{prefix}' is ambiguous ({matches} matches)."
        super().__init__(message)


class FileMissing(GitletError):
    """Raised when a working-tree file to be staged does not exist."""


class FileNotInCommit(GitletError):
    """Raised when a path is not tracked by the requested commit."""


class NothingToCommit(GitletError):
    """Raised for an empty commit message or an empty staging area."""


class NothingToRemove(GitletError):
    """Raised when rm targets a path that is neither staged nor tracked."""


class StagingError(GitletError):
    """Raised when the staging index cannot be read or written."""


class DatabaseError(GitletError):
    """Raised for metadata database failures."""


class BranchExists(GitletError):
    """Raised when creating a branch whose name is taken."""


class BranchNotFound(GitletError):
    """Raised when a branch name is unknown."""


class CannotRemoveCurrent(GitletError):
    """Raised when removing the checked-out branch."""


class AlreadyOnBranch(GitletError):
    """Raised when checking out the branch that is already current."""


class UntrackedCollision(GitletError):
    """Raised before any write that would clobber an untracked file.

    Attributes:
        paths: Untracked working-tree paths that are in the way.
    """

    def __init__(self, paths: List[str]) -> None:
        self.paths = sorted(paths)
        super().__init__(
            "There is an untracked file in the way; "
            "delete it, or add and commit it first."
        )


class MergeError(GitletError):
    """Base class for merges refused before any work is done."""


class UncommittedChanges(MergeError):
    """Raised when merging with a non-empty staging area."""


class MergeWithSelf(MergeError):
    """Raised when merging the current branch into itself."""


class InvalidBranchName(GitletError):
    """Raised for empty branch names or names containing path separators."""
