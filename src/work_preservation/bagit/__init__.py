"""BagIt core: path analysis, multi-digest hashing, bag build + validation."""

from .builder import BagBuilder, BuildSummary
from .checksums import ChecksumSet, hash_file, hash_file_blake3, hash_file_md5, hash_file_sha256
from .config import BaggingProfile, BaggingProfileError
from .contracts import (
    BagBuildError,
    BagError,
    BagIoError,
    BagLayout,
    BagMetadata,
    NoCommonRootError,
    NonUtf8PathError,
    PathNotFoundError,
    PayloadTally,
    ValidationIssue,
    format_bytes,
)
from .paths import DirectoryStats, FileEntry, analyze_path, analyze_paths, find_common_root, sanitize_name
from .service import BagResult, bag_name, create_bag, default_metadata, revalidate_bag
from .validator import BagValidator, is_valid, summarize_issues, validate_bag

__all__ = [
    "BagBuildError",
    "BagBuilder",
    "BagError",
    "BagIoError",
    "BagLayout",
    "BagMetadata",
    "BagResult",
    "BagValidator",
    "BaggingProfile",
    "BaggingProfileError",
    "BuildSummary",
    "ChecksumSet",
    "DirectoryStats",
    "FileEntry",
    "NoCommonRootError",
    "NonUtf8PathError",
    "PathNotFoundError",
    "PayloadTally",
    "ValidationIssue",
    "analyze_path",
    "analyze_paths",
    "bag_name",
    "create_bag",
    "default_metadata",
    "find_common_root",
    "format_bytes",
    "hash_file",
    "hash_file_blake3",
    "hash_file_md5",
    "hash_file_sha256",
    "is_valid",
    "revalidate_bag",
    "sanitize_name",
    "summarize_issues",
    "validate_bag",
]
