import asyncio
import logging

from typing import Awaitable, Callable, List

from usermgmt.decryptor import RecordDecryptor
from usermgmt.models import DecryptedUsers, EncryptedRecord, FieldFailure, NewUser, PlaintextRecord
from usermgmt.users_client import UsersClient

Fetch = Callable[[], Awaitable[List[EncryptedRecord]]]


class UserDirectory:
    """
    The user table currently on display.

    Every load (refresh or role filter) starts a new generation and cancels the
    one before it. Only the newest generation may replace `users`, so a slow
    older response never overwrites a newer one and the table is never a mix
    of two requests.
    """

    def __init__(self, client: UsersClient, decryptor: RecordDecryptor):
        self.client = client
        self.decryptor = decryptor
        self.users: List[PlaintextRecord] = []
        self.failures: List[FieldFailure] = []
        self._generation = 0
        self._pending: asyncio.Task | None = None

    def snapshot(self) -> DecryptedUsers:
        return DecryptedUsers(records=list(self.users), failures=list(self.failures))

    async def refresh(self) -> bool:
        return await self._load(self.client.list_users)

    async def filter_by_role(self, role: str) -> bool:
        if not role:
            raise ValueError("Please specify a role")
        return await self._load(lambda: self.client.filter_by_role(role))

    async def add_user(self, user: NewUser) -> bool:
        await self.client.create_user(user)
        return await self.refresh()

    async def delete_user(self, user_id: str) -> bool:
        await self.client.delete_user(user_id)
        return await self.refresh()

    async def _fetch_and_decrypt(self, fetch: Fetch) -> DecryptedUsers:
        records = await fetch()
        return await self.decryptor.decrypt_records(records)

    async def _load(self, fetch: Fetch) -> bool:
        self._generation += 1
        generation = self._generation

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

        task = asyncio.ensure_future(self._fetch_and_decrypt(fetch))
        self._pending = task

        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logging.info(f"Load {generation} superseded by load {self._generation}")
                return False
            raise

        if generation != self._generation:
            logging.info(f"Discarding stale load {generation}")
            return False

        self.users = result.records
        self.failures = result.failures
        return True
