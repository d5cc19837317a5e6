"""Content-addressable blob storage for Gitlet.

Blobs are stored in .gitlet/objects/ under the SHA-256 digest of their
content. Writing the same content twice is a no-op, so every distinct
file version is stored exactly once no matter how many commits use it.
"""

import hashlib
import os
import tempfile
from pathlib import Path

from loguru import logger

from gitlet.constants import HASH_ALGORITHM, HASH_LENGTH, OBJECTS_DIR
from gitlet.errors import ObjectCorrupted, ObjectNotFound


def compute_hash(content: bytes) -> str:
    """Compute the content digest used for every Gitlet object.

    Args:
        content: Binary data to hash

    Returns:
        Hex string of hash (64 characters for SHA-256)
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(content)
    return hasher.hexdigest()


def atomic_write(path: Path, data: bytes) -> None:
    """Write bytes to path via a temp file in the same directory and a rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def is_valid_hash(value: str) -> bool:
    """Return True if value looks like a full object id."""
    if not isinstance(value, str) or len(value) != HASH_LENGTH:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True


class ObjectStore:
    """Content-addressable storage for file blobs.

    Storage layout:
        .gitlet/objects/<hash[:2]>/<hash[2:]>

    Attributes:
        gitlet_dir: Path to the .gitlet directory
        objects_dir: Path to the objects directory

    Example:
        >>> store = ObjectStore(Path(".gitlet"))
        >>> blob_hash = store.write_blob(b"hello\\n")
        >>> assert store.read_blob(blob_hash) == b"hello\\n"
    """

    def __init__(self, gitlet_dir: Path) -> None:
        """Initialize the object store.

        Args:
            gitlet_dir: Path to .gitlet directory

        Raises:
            ValueError: If gitlet_dir doesn't exist
        """
        self.gitlet_dir = Path(gitlet_dir)
        self.objects_dir = self.gitlet_dir / OBJECTS_DIR

        if not self.gitlet_dir.exists():
            raise ValueError(f"Gitlet directory not found: {gitlet_dir}")

    def write_blob(self, content: bytes) -> str:
        """Store content and return its digest.

        If a blob with the same digest already exists nothing is written.

        Args:
            content: Binary content to store

        Returns:
            SHA-256 hash of the content (64 hex characters)

        Raises:
            OSError: If the write fails
        """
        blob_hash = compute_hash(content)

        if self.blob_exists(blob_hash):
            return blob_hash

        atomic_write(self._get_blob_path(blob_hash), content)
        logger.debug(f"Stored blob {blob_hash[:8]} ({len(content)} bytes)")
        return blob_hash

    def read_blob(self, blob_hash: str, verify_hash: bool = True) -> bytes:
        """Read a blob from the object store.

        Args:
            blob_hash: SHA-256 hash of the blob
            verify_hash: Whether to recompute and verify the digest

        Returns:
            Binary content of the blob

        Raises:
            ObjectNotFound: If the blob doesn't exist
            ObjectCorrupted: If hash verification fails
        """
        if not self.blob_exists(blob_hash):
            raise ObjectNotFound(f"Blob not found: {blob_hash}")

        content = self._get_blob_path(blob_hash).read_bytes()

        if verify_hash:
            actual_hash = compute_hash(content)
            if actual_hash != blob_hash:
                raise ObjectCorrupted(
                    f"Blob corrupted: expected {blob_hash}, got {actual_hash}"
                )

        return content

    def blob_exists(self, blob_hash: str) -> bool:
        """Check if a blob exists in the store."""
        if not is_valid_hash(blob_hash):
            return False
        return self._get_blob_path(blob_hash).exists()

    def _get_blob_path(self, blob_hash: str) -> Path:
        """Get the filesystem path for a blob (objects/<hash[:2]>/<hash[2:]>)."""
        return self.objects_dir / blob_hash[:2] / blob_hash[2:]
