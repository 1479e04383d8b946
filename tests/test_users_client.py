import asyncio
import json

import httpx
import pytest

from usermgmt.errors import ApiError
from usermgmt.models import EncryptedRecord, NewUser
from usermgmt.users_client import UsersClient, handle_api_response

BASE_URL = "http://users.test/api/users"

USER = {"id": "aWQ=", "name": "bmFtZQ==", "email": "ZW1haWw=", "role": "cm9sZQ=="}

def run_with(handler, call):
    async def _run():
        async with UsersClient(BASE_URL + "/", transport=httpx.MockTransport(handler)) as client:
            return await call(client)
    return asyncio.run(_run())

def test_list_users():
    seen = []

    def handler(request):
        seen.append((request.method, str(request.url)))
        return httpx.Response(200, json=[USER, USER])

    users = run_with(handler, lambda c: c.list_users())

    assert seen == [("GET", BASE_URL)]
    assert users == [EncryptedRecord(**USER), EncryptedRecord(**USER)]

def test_filter_by_role_quotes_the_role():
    seen = []

    def handler(request):
        seen.append(request.url.raw_path.decode())
        return httpx.Response(200, json=[USER])

    users = run_with(handler, lambda c: c.filter_by_role("ops/admin"))

    assert seen == ["/api/users/ops%2Fadmin"]
    assert len(users) == 1

def test_create_user_posts_json():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"name": "Ada"})

    data = run_with(handler, lambda c: c.create_user(NewUser(name="Ada", email="ada@example.com", role="admin")))

    assert bodies == [{"name": "Ada", "email": "ada@example.com", "role": "admin"}]
    assert data == {"name": "Ada"}

def test_create_user_with_empty_body():
    def handler(request):
        return httpx.Response(201)

    assert run_with(handler, lambda c: c.create_user(NewUser(name="Ada", email="ada@example.com", role="admin"))) is None

def test_records_with_bad_fields_are_kept():
    def handler(request):
        return httpx.Response(200, json=[USER, {**USER, "role": None}, {"id": 7}])

    users = run_with(handler, lambda c: c.list_users())

    assert len(users) == 3
    assert users[1].role is None
    assert users[2].id == 7 and users[2].email is None

def test_delete_user_without_body():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        return httpx.Response(204)

    assert run_with(handler, lambda c: c.delete_user("abc")) is None
    assert seen == [("DELETE", "/api/users/abc")]

def test_error_message_from_body():
    def handler(request):
        return httpx.Response(404, json={"message": "No users with that role"})

    with pytest.raises(ApiError) as excinfo:
        run_with(handler, lambda c: c.filter_by_role("ghost"))

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "No users with that role"

def test_error_falls_back_to_reason_phrase():
    response = httpx.Response(500, text="<html>boom</html>")

    with pytest.raises(ApiError) as excinfo:
        handle_api_response(response)

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Internal Server Error"

def test_unexpected_payload():
    def handler(request):
        return httpx.Response(200, json={"users": []})

    with pytest.raises(ApiError) as excinfo:
        run_with(handler, lambda c: c.list_users())

    assert excinfo.value.status_code == 502

@pytest.mark.parametrize("call", [
    lambda c: c.filter_by_role(""),
    lambda c: c.delete_user(""),
])
def test_missing_arguments_never_hit_the_network(call):
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ValueError):
        run_with(handler, call)
