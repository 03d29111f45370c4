# ========================================
# recruitdesk/routes/user.py
# ========================================

import logging

from fastapi import APIRouter, Depends, HTTPException

from recruitdesk.database import get_store
from recruitdesk.schemas.user import (
    AppRole,
    RoleCheckResponse,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from recruitdesk.utils.auth import admin_required, get_current_user
from recruitdesk.utils.security import check_password, create_access_token, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


# ✅ 1. LOGIN
@router.post("/login", response_model=TokenResponse)
async def login(user_credentials: UserLogin, store=Depends(get_store)):
    """Login and get JWT access token."""
    user = await store.get_user_by_email(user_credentials.email)
    valid, new_hash = check_password(user_credentials.password, user.get("password") if user else None)
    if not valid:
        logger.warning("Failed login for %s", user_credentials.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if new_hash:
        await store.update_password_hash(str(user["_id"]), new_hash)

    access_token = create_access_token(user["email"])
    return {"access_token": access_token, "token_type": "bearer"}


# ✅ 2. WHO AM I
@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user), store=Depends(get_store)):
    user_id = str(current_user["_id"])
    return {
        "id": user_id,
        "name": current_user.get("name"),
        "email": current_user["email"],
        "roles": await store.list_roles(user_id),
    }


# ✅ 3. ROLE CHECK (drives admin-only screens)
@router.get("/me/roles/{role}", response_model=RoleCheckResponse)
async def check_my_role(
    role: AppRole,
    current_user: dict = Depends(get_current_user),
    store=Depends(get_store),
):
    user_id = str(current_user["_id"])
    return RoleCheckResponse(user_id=user_id, role=role, has_role=await store.check_role(user_id, role))


# ✅ 4. CREATE AN HR ACCOUNT (ADMIN ONLY)
@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user: UserCreate,
    current_user: dict = Depends(admin_required),
    store=Depends(get_store),
):
    return await store.create_user(
        name=user.name,
        email=user.email,
        hashed_password=hash_password(user.password),
        role=user.role,
    )
