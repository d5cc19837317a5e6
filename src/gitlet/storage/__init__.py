"""Storage layer for Gitlet.

This module provides the content-addressable blob store, the commit graph,
and the metadata database that indexes commit history.
"""

from gitlet.storage.commit_graph import Commit, CommitGraph
from gitlet.storage.metadata_db import MetadataDB
from gitlet.storage.object_store import ObjectStore, compute_hash

__all__ = [
    "ObjectStore",
    "compute_hash",
    "Commit",
    "CommitGraph",
    "MetadataDB",
]
