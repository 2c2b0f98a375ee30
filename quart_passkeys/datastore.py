"""Credential store and the storage backends behind it."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

from sqlalchemy import select

from .models import CredentialRecord, UserRecord
from .webauthn import bytes_to_base64url, is_base64url


def create_user_handle() -> str:
    """36 raw bytes (a UUID4 in text form), base64url-encoded."""
    return bytes_to_base64url(str(uuid4()).encode("utf-8"))


def normalize_user_handle(handle: str | None) -> str:
    if not handle:
        return create_user_handle()
    if is_base64url(handle):
        return handle
    # Legacy rows stored the raw handle text.
    return bytes_to_base64url(handle.encode("utf-8"))


class StorageBackend:
    """Storage port: one user document per identity."""

    async def load(self, user_id: str) -> dict | None:
        raise NotImplementedError

    async def save(self, user_id: str, document: dict) -> None:
        raise NotImplementedError


class MemoryStorage(StorageBackend):
    def __init__(self, documents: dict | None = None):
        self.documents: dict[str, dict] = documents if documents is not None else {}

    async def load(self, user_id):
        document = self.documents.get(user_id)
        return json.loads(json.dumps(document)) if document is not None else None

    async def save(self, user_id, document):
        self.documents[user_id] = json.loads(json.dumps(document))


class JSONFileStorage(StorageBackend):
    """All users in a single JSON document on disk."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write({})
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        return json.loads(raw)

    def _write(self, store: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(store, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def read_all(self) -> dict:
        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def load(self, user_id):
        return (await self.read_all()).get(user_id)

    async def save(self, user_id, document):
        async with self._lock:
            store = await asyncio.to_thread(self._read)
            store[user_id] = document
            await asyncio.to_thread(self._write, store)


class SQLAlchemyStorage(StorageBackend):
    """Async storage backed by SQLAlchemy AsyncSession.

    ``user_model`` needs ``id``, ``user_handle`` and a JSON ``credentials`` column.
    """

    def __init__(self, session_factory, user_model):
        self.session_factory = session_factory
        self.user_model = user_model

    async def load(self, user_id):
        async with self.session_factory() as session:
            stmt = select(self.user_model).filter_by(id=user_id)
            result = await session.execute(stmt)
            row = result.scalars().first()
            if row is None:
                return None
            return {
                "id": row.id,
                "userHandle": row.user_handle,
                "credentials": list(row.credentials or []),
            }

    async def save(self, user_id, document):
        async with self.session_factory() as session:
            await session.merge(
                self.user_model(
                    id=user_id,
                    user_handle=document["userHandle"],
                    credentials=list(document["credentials"]),
                )
            )
            await session.commit()


class CredentialStore:
    """Read-modify-write access to user records, serialized per user."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        # user id -> [lock, holders]; dropped once the last holder leaves.
        self._locks: dict[str, list] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        entry = self._locks.get(user_id)
        if entry is None:
            entry = self._locks[user_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[user_id]

    async def _load(self, user_id: str) -> UserRecord | None:
        document = await self.storage.load(user_id)
        if document is None:
            return None
        user = UserRecord.from_dict(document)
        normalized = normalize_user_handle(user.user_handle)
        if normalized != user.user_handle:
            user.user_handle = normalized
            await self.storage.save(user_id, user.to_dict())
        return user

    async def get_user(self, user_id: str) -> UserRecord | None:
        async with self._user_lock(user_id):
            return await self._load(user_id)

    async def ensure_user(self, user_id: str) -> UserRecord:
        async with self._user_lock(user_id):
            user = await self._load(user_id)
            if user is not None:
                return user
            user = UserRecord(id=user_id, user_handle=create_user_handle())
            await self.storage.save(user_id, user.to_dict())
            return user

    async def add_or_update_credential(
        self, user_id: str, credential: CredentialRecord
    ) -> UserRecord:
        async with self._user_lock(user_id):
            user = await self._load(user_id)
            if user is None:
                user = UserRecord(id=user_id, user_handle=create_user_handle())
            user.credentials = [
                item
                for item in user.credentials
                if item.credential_id != credential.credential_id
            ]
            user.credentials.append(credential)
            await self.storage.save(user_id, user.to_dict())
            return user
