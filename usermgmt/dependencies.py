from fastapi import HTTPException, Request

from usermgmt.directory import UserDirectory

def get_directory(request: Request) -> UserDirectory:
    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        raise HTTPException(
            status_code=503,
            detail="User directory is not initialized.",
        )
    return directory
