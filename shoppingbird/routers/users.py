"""
User management API endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_password_hash, get_current_user
from shoppingbird.models.user import User
from shoppingbird.routers.auth import ensure_unique
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.user import UserCreate, UserUpdate, UserOut

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found"
        )
    return user


@router.get("/", response_model=List[UserOut])
def list_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List users with pagination."""
    return db.query(User).order_by(User.username).offset(skip).limit(limit).all()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a user on behalf of an administrator; the new user must change the password."""
    ensure_unique(db, user_data.username, user_data.email)

    user = User(
        username=user_data.username,
        email=user_data.email,
        full_name=user_data.full_name,
        phone=user_data.phone,
        is_store_employee=user_data.is_store_employee,
        password_hash=get_password_hash(user_data.password),
        require_password_change=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update an existing user.

    Raises:
        HTTPException 404: If the user is not found
        HTTPException 400: If the new username or email is taken
    """
    user = get_user_or_404(db, user_id)
    update_data = user_data.model_dump(exclude_unset=True)
    ensure_unique(db, update_data.get("username"), update_data.get("email"), exclude_id=user_id)

    password = update_data.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)

    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=SuccessResponse)
def deactivate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Deactivate a user. Users referenced by invoices are never deleted."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account"
        )
    user = get_user_or_404(db, user_id)
    user.is_active = False
    db.commit()
    return SuccessResponse(message=f"User {user.username} deactivated")
