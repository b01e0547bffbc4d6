"""Constants used throughout gitresolve."""

# Directory names
GIT_DIR = ".git"
OBJECTS_DIR = "objects"
REFS_DIR = "refs"
HEADS_DIR = "heads"
TAGS_DIR = "tags"

# File names
HEAD_FILE = "HEAD"
CONFIG_FILE = "config"
PACKED_REFS_FILE = "packed-refs"
LOCK_SUFFIX = ".lock"

# Reference namespaces
REFS_PREFIX = "refs/"
HEADS_PREFIX = "refs/heads/"
TAGS_PREFIX = "refs/tags/"
REMOTES_PREFIX = "refs/remotes/"
SYMREF_PREFIX = "ref: "

DEFAULT_BRANCH = "main"

# Symbolic refs are followed at most this many times (same limit as git)
MAX_SYMREF_DEPTH = 5

# Hash algorithm
HASH_ALGORITHM = "sha1"
HASH_LENGTH = 40  # SHA-1 produces 40 hex characters
RAW_HASH_LENGTH = 20

# Bytes decompressed when only the object header is needed
HEADER_READ_CHUNK = 64

# Loose object compression level (zlib default used by git)
ZLIB_LEVEL = 1

# Tree entry modes
MODE_TREE = 0o040000
MODE_BLOB = 0o100644
MODE_EXECUTABLE = 0o100755
MODE_GITLINK = 0o160000

# Exit codes
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
