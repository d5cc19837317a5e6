"""Gitlet - a small content-addressed version control system.

Gitlet tracks snapshots of a working tree in a commit DAG, keeps named
branch pointers, and merges divergent branches with a three-way merge.
"""

__version__ = "0.1.0"
__author__ = "Gitlet Contributors"

__all__ = ["__version__", "__author__"]
