"""
User registry HTTP routes — /api/users

Login is a three-step disambiguation, each step its own endpoint:
  1. POST /login/check-name       0, 1 or N users share the name
  2. POST /login/check-birthday   (name, month, day) narrows to exactly one user
  3. POST /login/verify-pin       PIN check → token + auth session

Steps 1 and 2 are read-only; only step 3 (and register) writes.
A wrong PIN is a 401 with the same message whatever the cause, so the
response never reveals which part of the identity was wrong.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import (
    CurrentUser,
    ensure_owner,
    get_current_user,
    hash_pin,
    issue_login,
    require_active_session,
    verify_pin,
)
from jibunshi.database import get_db
from jibunshi.users.schemas import (
    CheckBirthdayRequest,
    CheckNameRequest,
    ForgotPinRequest,
    RegisterRequest,
    UserOut,
    UserUpdateRequest,
    VerifyPinRequest,
)

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)

INVALID_PIN_MESSAGE = "The PIN is not correct. Please try again."


def _login_body(message: str, token: str, user) -> dict:
    return {
        "message": message,
        "token": token,
        "userId": user.id,
        "user": {"id": user.id, "name": user.name, "age": user.age},
    }


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------

@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Returns:
        201: {message, token, userId, user: {id, name, age}}
        409: (name, birth month, birth day) already registered
    """
    if await store.find_user_by_identity(db, body.name, body.birth_month, body.birth_day):
        raise HTTPException(
            status_code=409,
            detail="This name and birthday combination is already registered",
        )

    user = await store.create_user(
        db,
        name=body.name,
        age=body.age,
        birth_month=body.birth_month,
        birth_day=body.birth_day,
        pin_hash=hash_pin(body.pin),
    )
    token = await issue_login(db, user.id, user.name, body.device_id)
    return JSONResponse(status_code=201, content=_login_body("Registration complete", token, user))


@router.post("/login/check-name")
async def check_name(body: CheckNameRequest, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    users = await store.find_users_by_name(db, body.name)
    logger.info("check-name matches=%d", len(users))

    if not users:
        return JSONResponse(
            status_code=200,
            content={"exists": False, "count": 0, "message": "This name is not registered"},
        )
    if len(users) == 1:
        user = users[0]
        return JSONResponse(
            status_code=200,
            content={
                "exists": True,
                "count": 1,
                "userId": user.id,
                "name": user.name,
                "message": "Please enter your birthday",
            },
        )
    return JSONResponse(
        status_code=200,
        content={
            "exists": True,
            "count": len(users),
            "candidates": [
                {
                    "id": u.id,
                    "name": u.name,
                    "birthMonth": u.birth_month,
                    "birthDay": u.birth_day,
                    "age": u.age,
                }
                for u in users
            ],
            "message": "Several people share this name; your birthday tells them apart",
        },
    )


@router.post("/login/check-birthday")
@router.post("/login/verify-birthday")
async def check_birthday(body: CheckBirthdayRequest, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    user = await store.find_user_by_identity(db, body.name, body.month, body.day)
    if user is None:
        raise HTTPException(status_code=404, detail="No user with this name and birthday")
    return JSONResponse(
        status_code=200,
        content={"exists": True, "userId": user.id, "name": user.name},
    )


@router.post("/login/verify-pin")
async def verify_pin_route(body: VerifyPinRequest, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Returns:
        200: {message, token, userId, user}
        401: wrong PIN (generic message)
        404: unknown userId
    """
    user = await store.get_user(db, body.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_pin(body.pin, user.pin_hash):
        logger.info("PIN rejected user_id=%s", user.id)
        raise HTTPException(status_code=401, detail=INVALID_PIN_MESSAGE)

    token = await issue_login(db, user.id, user.name, body.device_id)
    logger.info("Login succeeded user_id=%s", user.id)
    return JSONResponse(status_code=200, content=_login_body("Logged in", token, user))


@router.post("/login/forgot-pin")
async def forgot_pin(body: ForgotPinRequest, db: AsyncSession = Depends(get_db)) -> JSONResponse:
    user = await store.find_user_by_identity(db, body.name, body.month, body.day)
    if user is None:
        raise HTTPException(status_code=404, detail="No user with this name and birthday")
    await store.set_user_pin(db, user, hash_pin(body.new_pin))
    return JSONResponse(
        status_code=200,
        content={"message": "PIN updated", "userId": user.id},
    )


@router.post("/logout")
async def logout(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await store.delete_auth_session(db, current.user_id)
    return JSONResponse(status_code=200, content={"message": "Logged out"})


# ---------------------------------------------------------------------------
# Profile (active session required)
# ---------------------------------------------------------------------------

async def _load_user(db: AsyncSession, user_id: int):
    user = await store.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/me")
async def me(
    current: CurrentUser = Depends(require_active_session),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    user = await _load_user(db, current.user_id)
    return JSONResponse(status_code=200, content=UserOut.model_validate(user).model_dump())


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current: CurrentUser = Depends(require_active_session),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    ensure_owner(current, user_id)
    user = await _load_user(db, user_id)
    return JSONResponse(status_code=200, content=UserOut.model_validate(user).model_dump())


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    current: CurrentUser = Depends(require_active_session),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    ensure_owner(current, user_id)
    user = await _load_user(db, user_id)
    changes = body.model_dump(exclude_none=True)
    if changes:
        user = await store.update_user(db, user, changes)
    return JSONResponse(status_code=200, content=UserOut.model_validate(user).model_dump())


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current: CurrentUser = Depends(require_active_session),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Hard delete; every child row goes with the user."""
    ensure_owner(current, user_id)
    if not await store.delete_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return JSONResponse(status_code=200, content={"message": "User deleted", "userId": user_id})
