"""Flat key-value user store.

The screening domain only depends on the :class:`UserStore` protocol
(``get`` / ``put``). Two implementations ship: an in-memory store for tests
and a single-file JSON store, optionally encrypting each record with
:class:`~vitascan.core.storage.encryption.FieldEncryptor`.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from vitascan.core.storage.encryption import EncryptionError, FieldEncryptor

logger = logging.getLogger(__name__)


class UserStoreError(Exception):
    """Raised when the user store cannot be read or written."""


@runtime_checkable
class UserStore(Protocol):
    """Key-value repository of user profile records."""

    def get(self, user_id: str) -> dict[str, Any] | None: ...

    def put(self, user_id: str, record: dict[str, Any]) -> None: ...


class InMemoryUserStore:
    """Dict-backed store. Records are copied on the way in and out."""

    kind = "memory"

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    def get(self, user_id: str) -> dict[str, Any] | None:
        record = self._records.get(user_id)
        return copy.deepcopy(record) if record is not None else None

    def put(self, user_id: str, record: dict[str, Any]) -> None:
        self._records[user_id] = copy.deepcopy(record)

    def __len__(self) -> int:
        return len(self._records)


class JsonFileUserStore:
    """Single JSON file mapping ``user_id -> record``.

    With an encryptor, each value in the file is a Fernet token rather than
    the record itself. Writes replace the whole file atomically.

    Usage::

        store = JsonFileUserStore("~/.vitascan/users.json")
        store.put("user_1", {"personalInfo": {"name": "Ada"}})
        store.get("user_1")
    """

    kind = "json_file"

    def __init__(self, path: str | Path, encryptor: FieldEncryptor | None = None) -> None:
        self._path = Path(path).expanduser()
        self._enc = encryptor
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, user_id: str) -> dict[str, Any] | None:
        with self._lock:
            raw = self._load()
        value = raw.get(user_id)
        if value is None:
            return None
        return self._decode(user_id, value)

    def put(self, user_id: str, record: dict[str, Any]) -> None:
        with self._lock:
            raw = self._load()
            raw[user_id] = self._encode(record)
            self._write(raw)
        logger.debug("Stored user record %s", user_id)

    def user_ids(self) -> list[str]:
        with self._lock:
            return list(self._load())

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise UserStoreError(f"Failed to read user store {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise UserStoreError(f"User store {self._path} is not a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise UserStoreError(f"Failed to write user store {self._path}: {exc}") from exc

    def _encode(self, record: dict[str, Any]) -> Any:
        if self._enc is None:
            return record
        try:
            return self._enc.encrypt(record)
        except EncryptionError as exc:
            raise UserStoreError(f"Failed to encrypt user record: {exc}") from exc

    def _decode(self, user_id: str, value: Any) -> dict[str, Any]:
        if self._enc is None:
            if not isinstance(value, dict):
                raise UserStoreError(
                    f"Record {user_id} is not a JSON object (encrypted store without a key?)"
                )
            return value
        if not isinstance(value, str):
            raise UserStoreError(f"Record {user_id} is not an encrypted token")
        try:
            record = self._enc.decrypt(value)
        except EncryptionError as exc:
            raise UserStoreError(f"Failed to decrypt record {user_id}: {exc}") from exc
        if not isinstance(record, dict):
            raise UserStoreError(f"Record {user_id} did not decrypt to an object")
        return record
