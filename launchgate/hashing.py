from __future__ import annotations
import hashlib
from enum import Enum
from pathlib import Path

CHUNK = 1 << 20


class VerifyResult(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    HASH_SOURCE_MISSING = "hash-source-missing"
    FILE_MISSING = "file-missing"

    @property
    def ok(self) -> bool:
        return self is VerifyResult.MATCH


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(CHUNK), b""):
            h.update(block)
    return h.hexdigest()


def verify(path: Path, hash_source: Path) -> VerifyResult:
    """Check `path` against the digest recorded anywhere in `hash_source`.

    The record may hold other text (e.g. "<hex>  filename"), so the freshly
    computed hex digest only has to appear in it, ignoring case. Pure check:
    nothing is deleted here.
    """
    path, hash_source = Path(path), Path(hash_source)
    if not path.is_file():
        return VerifyResult.FILE_MISSING
    if not hash_source.is_file():
        return VerifyResult.HASH_SOURCE_MISSING
    expected = hash_source.read_text(encoding="utf-8", errors="ignore").lower()
    actual = sha256_file(path)
    return VerifyResult.MATCH if actual in expected else VerifyResult.MISMATCH
