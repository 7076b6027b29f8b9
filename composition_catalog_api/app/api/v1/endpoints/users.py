"""
User endpoints for API v1.

Registration, login (returns a bearer token) and the caller's own
profile.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from composition_catalog_api.app.core.errors import ServiceError
from composition_catalog_api.app.core.security import create_access_token, get_current_user
from composition_catalog_api.app.schemas.user import UserCreate, UserLogin, UserRead
from composition_catalog_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate) -> UserRead:
    """Register a new user.  The very first user becomes super administrator."""
    try:
        return await UserService.create_user(user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/login")
async def login_user(credentials: UserLogin) -> dict:
    db_user = await UserService.authenticate(credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token({"sub": db_user.email})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> UserRead:
    try:
        return await UserService.get_user(current_user.get("user_id"))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
