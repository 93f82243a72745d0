from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from jobtracker.storage import ObjectStore

ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


async def get_requester_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> int:
    """Return the authenticated user's id from the bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    secret = request.app.state.settings.SESSION_SECRET_KEY
    if not secret:
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, secret, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception

    user_id = payload.get("userId", payload.get("sub"))
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise credentials_exception


def get_object_store(request: Request) -> ObjectStore | None:
    return request.app.state.object_store
