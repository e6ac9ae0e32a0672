# backend/routes/users.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, UserRole
from schemas.user import UserCreate, UserResponse, PasswordChange
from schemas.product import SuccessResponse
from utils.audit import write_log, client_ip
from utils.hashing import get_password_hash
from utils.tokenJWT import get_current_user, require_admin

router = APIRouter(prefix="/users", tags=["Users"])


# List staff accounts (admin only)
@router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return db.query(User).order_by(User.id.asc()).all()


# Create a staff account (admin only)
@router.post("", response_model=UserResponse)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    name = payload.name.strip()
    if db.query(User).filter(User.name == name).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    user = User(name=name, password_hash=get_password_hash(payload.password), role=payload.role)
    db.add(user)
    db.commit()
    db.refresh(user)

    write_log(db, user_id=current_user.id, action="USER_CREATE", resource="users",
              ip=client_ip(request), meta={"id": user.id, "name": user.name, "role": user.role})
    return user


# Delete a staff account; admin accounts cannot be deleted
@router.delete("/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if (user.role or "").lower() == UserRole.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot delete admin user")

    db.delete(user)
    db.commit()

    write_log(db, user_id=current_user.id, action="USER_DELETE", resource="users",
              ip=client_ip(request), meta={"id": user_id})
    return {"success": True}


# Change a password: admins for anyone, users for themselves
@router.put("/{user_id}/password", response_model=SuccessResponse)
def change_password(
    user_id: int,
    payload: PasswordChange,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    is_admin = (current_user.role or "").lower() == UserRole.ADMIN.value
    if not is_admin and current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user.password_hash = get_password_hash(payload.password)
    db.commit()

    write_log(db, user_id=current_user.id, action="USER_PASSWORD", resource="users",
              ip=client_ip(request), meta={"id": user_id})
    return {"success": True}
