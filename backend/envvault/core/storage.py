import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from envvault.models import Secret, SecretRecord, VaultDocument
from envvault.core.crypto import (
    CryptoError,
    decrypt_value,
    encrypt_value,
    generate_master_key,
    is_encrypted_string,
    load_master_key,
    write_master_key,
)
from envvault.core.masking import mask
from envvault.core.search import search_records

logger = logging.getLogger(__name__)

STORE_FILE = "vault.json"
KEY_FILE = "vault.key"
FORMAT_VERSION = 1


class StorageUnavailable(Exception):
    """Raised when the store cannot be opened, read, decrypted or written."""


class ValidationError(Exception):
    """Raised when a record is rejected before anything is persisted."""


@dataclass(frozen=True)
class _Snapshot:
    records: Tuple[SecretRecord, ...] = ()
    by_key: Dict[str, int] = field(default_factory=dict)
    next_id: int = 1

    @classmethod
    def build(cls, records, next_id: int) -> "_Snapshot":
        records = tuple(records)
        return cls(records=records, by_key={r.key: r.id for r in records}, next_id=next_id)

    def position(self, secret_id: int) -> Optional[int]:
        for idx, record in enumerate(self.records):
            if record.id == secret_id:
                return idx
        return None


def _project(record: SecretRecord) -> Secret:
    return Secret(id=record.id, key=record.key, value_masked=mask(record.value))


class StorageEngine:
    """
    Durable secret store backed by a single JSON document.

    Mutations are serialized by one lock that is held across the durable write, and a
    new snapshot is published only after the file has been replaced. Readers take the
    current snapshot without locking, so they never observe a half-applied change.
    """

    def __init__(self, data_dir: str | Path):
        self.base_dir = Path(data_dir).expanduser()
        self.master_key: bytes | None = None
        self._snapshot = _Snapshot()
        self._lock = threading.Lock()
        self._opened = False

    # --- Paths ---
    def _store_path(self) -> Path:
        return self.base_dir / STORE_FILE

    def _key_path(self) -> Path:
        return self.base_dir / KEY_FILE

    @property
    def is_open(self) -> bool:
        return self._opened

    # --- Lifecycle ---
    def init(self):
        with self._lock:
            if self._opened:
                return
            try:
                self.base_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageUnavailable(f"cannot create data dir {self.base_dir}: {exc}") from exc
            if not os.access(self.base_dir, os.W_OK):
                raise StorageUnavailable(f"data dir {self.base_dir} is not writable")

            store_exists = self._store_path().exists()
            self.master_key = self._open_master_key(store_exists)
            if store_exists:
                snapshot = self._read_store()
            else:
                snapshot = _Snapshot()
                self._write_store(snapshot)
            self._snapshot = snapshot
            self._opened = True
            logger.info("Opened vault store at %s (%d secrets)", self._store_path(), len(snapshot.records))

    def close(self):
        with self._lock:
            self._opened = False
            self.master_key = None
            self._snapshot = _Snapshot()

    def _open_master_key(self, store_exists: bool) -> bytes:
        key_path = self._key_path()
        try:
            if key_path.exists():
                return load_master_key(key_path)
            if store_exists:
                raise StorageUnavailable(f"{key_path} is missing; existing store cannot be decrypted")
            key = generate_master_key()
            write_master_key(key_path, key)
            return key
        except (CryptoError, OSError) as exc:
            raise StorageUnavailable(f"master key unusable: {exc}") from exc

    def _require_open(self) -> _Snapshot:
        if not self._opened:
            raise StorageUnavailable("vault store is not initialized")
        return self._snapshot

    # --- Persistence ---
    def _read_store(self) -> _Snapshot:
        try:
            with open(self._store_path(), "r", encoding="utf-8") as f:
                doc = VaultDocument.model_validate(json.load(f))
            if doc.v != FORMAT_VERSION:
                raise ValueError(f"unsupported store version {doc.v}")
            records = []
            for stored in doc.secrets:
                if not is_encrypted_string(stored.value):
                    raise ValueError(f"value of {stored.key} is not encrypted")
                plain = decrypt_value(stored.value, self.master_key)
                records.append(stored.model_copy(update={"value": plain}))
        except (OSError, ValueError, CryptoError) as exc:
            raise StorageUnavailable(f"vault store is unreadable or corrupt: {exc}") from exc

        ids = [r.id for r in records]
        keys = [r.key for r in records]
        if len(set(ids)) != len(ids) or len(set(keys)) != len(keys):
            raise StorageUnavailable("vault store is corrupt: duplicate ids or keys")
        if any(not k for k in keys):
            raise StorageUnavailable("vault store is corrupt: empty key")
        next_id = max([doc.next_id] + [i + 1 for i in ids])
        return _Snapshot.build(records, next_id)

    def _write_store(self, snapshot: _Snapshot):
        doc = VaultDocument(
            v=FORMAT_VERSION,
            next_id=snapshot.next_id,
            secrets=[
                r.model_copy(update={"value": encrypt_value(r.value, self.master_key)})
                for r in snapshot.records
            ],
        )
        try:
            self._atomic_write(self._store_path(), doc)
        except OSError as exc:
            raise StorageUnavailable(f"failed to persist vault store: {exc}") from exc

    def _atomic_write(self, target_path: Path, data: VaultDocument):
        target_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = target_path.with_suffix(".tmp")
        payload = json.dumps(data.model_dump(), indent=2)
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target_path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        self._fsync_dir(target_path.parent)

    @staticmethod
    def _fsync_dir(path: Path):
        # Directory fsync makes the rename itself durable; not available on Windows
        if os.name != "posix":
            return
        fd = os.open(path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def _commit(self, snapshot: _Snapshot):
        self._write_store(snapshot)
        self._snapshot = snapshot

    # --- Mutations ---
    def add(self, key: str, value: str) -> SecretRecord:
        if not key:
            raise ValidationError("key must not be empty")
        with self._lock:
            snap = self._require_open()
            now = time.time()
            existing_id = snap.by_key.get(key)
            if existing_id is not None:
                idx = snap.position(existing_id)
                record = snap.records[idx].model_copy(update={"value": value, "updated_at": now})
                records = snap.records[:idx] + (record,) + snap.records[idx + 1:]
                self._commit(_Snapshot.build(records, snap.next_id))
                logger.info("Replaced value of secret %s (id=%d)", key, record.id)
                return record

            record = SecretRecord(id=snap.next_id, key=key, value=value, created_at=now, updated_at=now)
            self._commit(_Snapshot.build(snap.records + (record,), snap.next_id + 1))
            logger.info("Added secret %s (id=%d)", key, record.id)
            return record

    def update(self, secret_id: int, value: str) -> bool:
        with self._lock:
            snap = self._require_open()
            idx = snap.position(secret_id)
            if idx is None:
                return False
            record = snap.records[idx].model_copy(update={"value": value, "updated_at": time.time()})
            records = snap.records[:idx] + (record,) + snap.records[idx + 1:]
            self._commit(_Snapshot.build(records, snap.next_id))
            logger.info("Updated secret %s (id=%d)", record.key, secret_id)
            return True

    def delete(self, secret_id: int) -> bool:
        with self._lock:
            snap = self._require_open()
            idx = snap.position(secret_id)
            if idx is None:
                return False
            removed = snap.records[idx]
            records = snap.records[:idx] + snap.records[idx + 1:]
            self._commit(_Snapshot.build(records, snap.next_id))
            logger.info("Deleted secret %s (id=%d)", removed.key, secret_id)
            return True

    # --- Reads ---
    def get_all(self) -> List[Secret]:
        return [_project(r) for r in self._require_open().records]

    def search(self, query: str, limit: Optional[int] = None) -> List[Secret]:
        records = self._require_open().records
        return [_project(r) for r in search_records(records, query or "", limit=limit)]

    def get_full(self, secret_id: int) -> Optional[str]:
        snap = self._require_open()
        idx = snap.position(secret_id)
        if idx is None:
            return None
        return snap.records[idx].value

    def pairs(self) -> List[Tuple[str, str]]:
        """Full (key, value) pairs in listing order, for export and shell sync only."""
        return [(r.key, r.value) for r in self._require_open().records]
