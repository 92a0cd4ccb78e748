from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi_users import exceptions, schemas

from core.auth import UserManager, current_active_user, get_user_manager
from db.users import User
from schemas.users import ChangePassword, UserRead

router = APIRouter()


@router.get("/me", response_model=UserRead)
async def get_current_user(user: User = Depends(current_active_user)):
    return user


@router.put("/change-password", response_model=Dict)
async def change_password(
    payload: ChangePassword,
    request: Request,
    user: User = Depends(current_active_user),
    user_manager: UserManager = Depends(get_user_manager),
):
    verified, _ = user_manager.password_helper.verify_and_update(payload.current_password, user.hashed_password)
    if not verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    try:
        await user_manager.update(schemas.BaseUserUpdate(password=payload.new_password), user, safe=True, request=request)
    except exceptions.InvalidPasswordException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)
    return {"message": "Password changed successfully"}
