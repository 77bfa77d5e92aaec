"""Upload and output files on local disk.

Artifacts are addressed by a ref relative to the upload root
(``inputs/<base>_<uuid><ext>`` or ``outputs/<base>_converted_<ms><ext>``), so
two jobs never write the same path.
"""
import logging
import re
import time
import uuid
from pathlib import Path, PurePath
from typing import BinaryIO, NamedTuple

logger = logging.getLogger(__name__)

INPUTS = "inputs"
OUTPUTS = "outputs"
CHUNK_SIZE = 1024 * 1024

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class UploadTooLarge(ValueError):
    def __init__(self, limit_bytes: int):
        super().__init__(f"Upload exceeds {limit_bytes // (1024 * 1024)}MB")
        self.limit_bytes = limit_bytes


class StoredUpload(NamedTuple):
    ref: str
    size: int


def safe_stem(filename: str) -> str:
    stem = _UNSAFE.sub("_", PurePath(filename).stem).strip("._")
    return stem or "file"


def output_filename(input_filename: str, extension: str, now_ms: int | None = None) -> str:
    """``<base>_converted_<ms>.<ext>`` for a job's result."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = f".{extension}" if extension else ""
    return f"{safe_stem(input_filename)}_converted_{stamp}{suffix}"


class ArtifactStore:
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def ensure_dirs(self) -> None:
        (self.root / INPUTS).mkdir(parents=True, exist_ok=True)
        (self.root / OUTPUTS).mkdir(parents=True, exist_ok=True)

    def path(self, ref: str) -> Path:
        """Absolute path for a ref; refs that escape the root are rejected."""
        candidate = (self.root / ref).resolve()
        if self.root not in candidate.parents:
            raise ValueError(f"Artifact ref outside storage root: {ref}")
        return candidate

    def exists(self, ref: str | None) -> bool:
        return bool(ref) and self.path(ref).is_file()

    def save_upload(self, stream: BinaryIO, filename: str, max_bytes: int) -> StoredUpload:
        """Copy an upload to disk in chunks, stopping once it exceeds ``max_bytes``."""
        self.ensure_dirs()
        ref = f"{INPUTS}/{safe_stem(filename)}_{uuid.uuid4().hex}{PurePath(filename).suffix.lower()}"
        target = self.path(ref)
        size = 0
        try:
            with open(target, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_bytes:
                        raise UploadTooLarge(max_bytes)
                    out.write(chunk)
        except Exception:
            target.unlink(missing_ok=True)
            raise
        return StoredUpload(ref, size)

    def output_ref(self, filename: str) -> str:
        self.ensure_dirs()
        return f"{OUTPUTS}/{filename}"

    def size(self, ref: str) -> int:
        return self.path(ref).stat().st_size

    def delete(self, ref: str | None) -> None:
        if not ref:
            return
        try:
            self.path(ref).unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not delete artifact %s", ref, exc_info=True)
