import logging

import httpx

from contextlib import asynccontextmanager
from typing import Annotated
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from usermgmt.decryptor import RecordDecryptor
from usermgmt.dependencies import get_directory
from usermgmt.directory import UserDirectory
from usermgmt.errors import ApiError, KeyConfigurationError
from usermgmt.keys import SharedKeyHandle
from usermgmt.models import DecryptedUsers, NewUser
from usermgmt.users_client import UsersClient
from usermgmt.utils import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # A missing or broken key must stop startup, not show up later as an empty table
    key = SharedKeyHandle.from_settings(settings)
    key.get()

    client = UsersClient(settings.USERS_API_URL, timeout=settings.REQUEST_TIMEOUT)
    app.state.directory = UserDirectory(client, RecordDecryptor(key))
    logging.info(f"Serving decrypted users from {settings.USERS_API_URL}")

    try:
        yield
    finally:
        await client.aclose()
        key.close()
        app.state.directory = None


app = FastAPI(
    title="User Management API",
    description="Lists users from the user service with their confidential fields decrypted.",
    version="1.0.0",
    lifespan=lifespan,
)

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(httpx.HTTPError)
async def upstream_error_handler(request: Request, exc: httpx.HTTPError):
    logging.error(f"Could not reach the user service: {exc}")
    return JSONResponse(status_code=502, content={"detail": "User service is unreachable"})


@app.exception_handler(KeyConfigurationError)
async def key_error_handler(request: Request, exc: KeyConfigurationError):
    return JSONResponse(status_code=503, content={"detail": f"Decryption is unavailable: {exc}"})


def current_table(applied: bool, directory: UserDirectory, detail: str = "Superseded by a newer request") -> DecryptedUsers:
    # Only an applied load owns the shared table
    if not applied:
        raise HTTPException(status_code=409, detail=detail)
    return directory.snapshot()


@app.get("/users", tags=["Users"], response_model=DecryptedUsers)
async def list_users(directory: Annotated[UserDirectory, Depends(get_directory)]):
    return current_table(await directory.refresh(), directory)


@app.get("/users/role/{role}", tags=["Users"], response_model=DecryptedUsers)
async def filter_users_by_role(role: str, directory: Annotated[UserDirectory, Depends(get_directory)]):
    return current_table(await directory.filter_by_role(role), directory)


@app.post("/users", tags=["Users"], response_model=DecryptedUsers, status_code=201)
async def add_user(user: NewUser, directory: Annotated[UserDirectory, Depends(get_directory)]):
    applied = await directory.add_user(user)
    return current_table(applied, directory, "User created; the table refresh was superseded by a newer request")


@app.delete("/users/{user_id}", tags=["Users"], response_model=DecryptedUsers)
async def delete_user(user_id: str, directory: Annotated[UserDirectory, Depends(get_directory)]):
    applied = await directory.delete_user(user_id)
    return current_table(applied, directory, "User deleted; the table refresh was superseded by a newer request")


def main():
    import uvicorn

    uvicorn.run("usermgmt.api:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
