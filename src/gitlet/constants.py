"""Constants used throughout Gitlet."""

# Version
VERSION = "0.1.0"

# Directory names
GITLET_DIR = ".gitlet"
OBJECTS_DIR = "objects"
COMMITS_DIR = "commits"
BRANCHES_DIR = "branches"

# File names
METADATA_DB = "metadata.db"
HEAD_FILE = "HEAD"
INDEX_FILE = "index"

# Branches
DEFAULT_BRANCH = "master"

# Root commit
INITIAL_COMMIT_MESSAGE = "initial commit"
EPOCH_TIMESTAMP = "1970-01-01T00:00:00+00:00"

# Hash algorithm
HASH_ALGORITHM = "sha256"
HASH_LENGTH = 64  # SHA-256 produces 64 hex characters

# Staging index format
INDEX_VERSION = 1

# Conflict markers written into the working tree
CONFLICT_HEAD = "<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = "=======\n"
CONFLICT_END = ">>>>>>>\n"

# Merge commit message template
MERGE_MESSAGE = "Merged {given} into {current}."

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2

# Database schema version
DB_SCHEMA_VERSION = 1
