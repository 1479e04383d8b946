import logging

from typing import Any, List
from urllib.parse import quote

import httpx

from usermgmt.errors import ApiError
from usermgmt.models import EncryptedRecord, NewUser


def handle_api_response(response: httpx.Response) -> Any:
    if response.is_success:
        if not response.content:
            return None
        return response.json()

    message = None
    try:
        body = response.json()
        if isinstance(body, dict):
            message = body.get("message")
    except ValueError:
        pass

    message = message or response.reason_phrase
    logging.error(f"User service error {response.status_code}: {message}")
    raise ApiError(response.status_code, message)


class UsersClient:
    """Async client for the user service. Confidential values stay encrypted here."""

    def __init__(self, base_url: str, timeout: float | None = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_users(self) -> List[EncryptedRecord]:
        response = await self._client.get(self.base_url)
        return self._records(handle_api_response(response))

    async def filter_by_role(self, role: str) -> List[EncryptedRecord]:
        if not role:
            raise ValueError("Please specify a role")

        response = await self._client.get(f"{self.base_url}/{quote(role, safe='')}")
        return self._records(handle_api_response(response))

    async def create_user(self, user: NewUser) -> Any:
        response = await self._client.post(self.base_url, json=user.model_dump())
        data = handle_api_response(response)
        logging.info("User created")
        return data

    async def delete_user(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("User ID is required")

        response = await self._client.delete(f"{self.base_url}/{quote(user_id, safe='')}")
        if not response.is_success:
            handle_api_response(response)
        logging.info("User deleted")

    @staticmethod
    def _records(data: Any) -> List[EncryptedRecord]:
        if not isinstance(data, list):
            raise ApiError(502, "User service returned an unexpected payload")
        return [EncryptedRecord.from_payload(item) for item in data]
