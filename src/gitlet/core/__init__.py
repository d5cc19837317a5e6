"""Core engine layer for Gitlet.

This module provides the version-control operations: staging, branch
pointers, working-tree checkout, three-way merge, and the Repository
object that ties them together.
"""

from gitlet.core.branches import BranchTable
from gitlet.core.merge import MergeEngine, MergeResult, MergeStatus
from gitlet.core.repository import Repository, StatusReport
from gitlet.core.staging import StagingArea
from gitlet.core.worktree import WorkingTree

__all__ = [
    "BranchTable",
    "MergeEngine",
    "MergeResult",
    "MergeStatus",
    "Repository",
    "StatusReport",
    "StagingArea",
    "WorkingTree",
]
