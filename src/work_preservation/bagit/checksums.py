"""Single-pass multi-digest file hashing (BLAKE3 + SHA-256 + MD5)."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
from pathlib import Path
import shutil
from typing import Any, Callable

from blake3 import blake3

from .contracts import BagIoError


CHUNK_SIZE = 8192

_DIGESTS: dict[str, Callable[[], Any]] = {
    "blake3": blake3,
    "sha256": hashlib.sha256,
    "md5": hashlib.md5,
}


@dataclass(frozen=True)
class ChecksumSet:
    blake3: str
    sha256: str
    md5: str

    @property
    def fast_hash(self) -> str:
        return self.blake3

    @property
    def crypto_hash(self) -> str:
        return self.sha256

    @property
    def legacy_hash(self) -> str:
        return self.md5

    def as_dict(self) -> dict[str, str]:
        return {"blake3": self.blake3, "sha256": self.sha256, "md5": self.md5}


def hash_file(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> ChecksumSet:
    digests = _digest_file(Path(path), ("blake3", "sha256", "md5"), chunk_size)
    return ChecksumSet(blake3=digests["blake3"], sha256=digests["sha256"], md5=digests["md5"])


def hash_file_sha256(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> str:
    return _digest_file(Path(path), ("sha256",), chunk_size)["sha256"]


def hash_file_md5(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> str:
    return _digest_file(Path(path), ("md5",), chunk_size)["md5"]


def hash_file_blake3(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> str:
    return _digest_file(Path(path), ("blake3",), chunk_size)["blake3"]


def copy_with_sha256(
    source: str | Path,
    destination: str | Path,
    *,
    chunk_size: int = CHUNK_SIZE,
) -> tuple[int, str]:
    """Copy ``source`` to ``destination`` chunk by chunk, hashing what is written.

    Returns the number of bytes written and the SHA-256 hex digest of the copy.
    """
    source_path = Path(source)
    destination_path = Path(destination)
    hasher = hashlib.sha256()
    written = 0
    try:
        with source_path.open("rb") as reader, destination_path.open("wb") as writer:
            while chunk := reader.read(chunk_size):
                writer.write(chunk)
                hasher.update(chunk)
                written += len(chunk)
        shutil.copymode(source_path, destination_path)
    except OSError as exc:
        raise BagIoError(f"COPY_FAILED:{source_path}->{destination_path}") from exc
    return written, hasher.hexdigest()


def _digest_file(path: Path, algorithms: tuple[str, ...], chunk_size: int) -> dict[str, str]:
    accumulators = [(name, _DIGESTS[name]()) for name in algorithms]
    try:
        with path.open("rb") as handle:
            while chunk := handle.read(chunk_size):
                for _, accumulator in accumulators:
                    accumulator.update(chunk)
    except OSError as exc:
        raise BagIoError(f"READ_FAILED:{path}") from exc
    return {name: accumulator.hexdigest() for name, accumulator in accumulators}
