"""Workbook file safety: fingerprints, backups, atomic replace, sidecar lock."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import portalocker

LOCK_SUFFIX = ".nlsheet.lock"
TEMP_PREFIX = ".nlsheet_tmp_"
_CHUNK = 64 * 1024


def fingerprint(path: str | Path) -> str:
    """``sha256:<hex>`` digest of a file's bytes."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


def backup(path: str | Path) -> str:
    """Copy *path* to ``<stem>.<utc-stamp>.bak<suffix>`` beside it.

    A second backup within the same second gets a ``-1``, ``-2``... suffix
    on the stamp instead of overwriting the first.
    """
    source = Path(path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    candidate = source.with_name(f"{source.stem}.{stamp}.bak{source.suffix}")
    n = 0
    while candidate.exists():
        n += 1
        candidate = source.with_name(f"{source.stem}.{stamp}-{n}.bak{source.suffix}")
    shutil.copy2(source, candidate)
    return str(candidate)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Replace *target* with *data* so readers never see a partial file."""
    target = Path(target)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=TEMP_PREFIX, suffix=target.suffix)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class WorkbookLock:
    """Exclusive sidecar lock held while a workbook is read, edited and saved.

    The ``<file>.nlsheet.lock`` file stays on disk after release; only the OS
    lock on it matters, so a crashed process never leaves a stale lock.
    ``timeout`` is how long to keep retrying before raising
    :class:`portalocker.LockException`; ``0`` fails at once.
    """

    def __init__(self, workbook_path: str | Path, *, timeout: float = 0) -> None:
        self.workbook_path = Path(workbook_path).resolve()
        self.timeout = timeout
        self._lock_path = self.workbook_path.with_name(self.workbook_path.name + LOCK_SUFFIX)
        self._handle: TextIOWrapper | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def _try_lock(self) -> None:
        assert self._handle is not None
        portalocker.lock(self._handle, portalocker.LOCK_EX | portalocker.LOCK_NB)

    def _acquire(self) -> None:
        if self.timeout <= 0:
            self._try_lock()
            return
        deadline = time.monotonic() + self.timeout
        poll = min(0.1, max(0.01, self.timeout / 20))
        while True:
            try:
                self._try_lock()
                return
            except portalocker.LockException:
                if time.monotonic() >= deadline:
                    raise
                time.sleep(poll)

    def _record_holder(self) -> None:
        assert self._handle is not None
        self._handle.seek(0)
        self._handle.truncate()
        self._handle.write(f"pid={os.getpid()}\ntime={datetime.now(timezone.utc).isoformat()}\n")
        self._handle.flush()

    def __enter__(self) -> "WorkbookLock":
        self._handle = open(self._lock_path, "a+")  # noqa: SIM115
        try:
            self._acquire()
        except portalocker.LockException:
            self._handle.close()
            self._handle = None
            raise
        self._record_holder()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if self._handle is None:
            return
        try:
            portalocker.unlock(self._handle)
        finally:
            self._handle.close()
            self._handle = None


def read_text_safe(path: str | Path) -> str:
    """Read a text file, dropping a leading UTF-8 BOM if present."""
    return Path(path).read_text(encoding="utf-8-sig")
