from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from recruitdesk.database import get_store
from recruitdesk.utils.security import read_token_subject

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store=Depends(get_store),
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    email = read_token_subject(credentials.credentials)
    if email is None:
        raise credentials_exception

    user = await store.get_user_by_email(email)
    if user is None:
        raise credentials_exception

    return user


async def admin_required(current_user: dict = Depends(get_current_user), store=Depends(get_store)):
    """Only users holding the admin role pass."""
    if not await store.check_role(str(current_user["_id"]), "admin"):
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user
