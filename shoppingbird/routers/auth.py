"""
Authentication API endpoints.

Cashiers log in with their email address or username and receive a JWT
bearer token used by every other endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_password_hash, verify_password, create_access_token, get_current_user
from shoppingbird.models.user import User
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.user import UserCreate, UserOut, LoginRequest, LoginResponse, PasswordChange

router = APIRouter(prefix="/auth", tags=["Authentication"])


def ensure_unique(db: Session, username: str = None, email: str = None, exclude_id: int = None):
    """Raise 400 when the username or email is already taken by another user"""
    for column, value, label in ((User.username, username, "Username"), (User.email, email, "Email")):
        if not value:
            continue
        query = db.query(User).filter(column == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label} already registered"
            )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user.

    Args:
        user_data: User data with plain text password
        db: Database session

    Returns:
        Created user (without password)

    Raises:
        HTTPException 400: If username or email already exists
    """
    ensure_unique(db, user_data.username, user_data.email)

    new_user = User(
        username=user_data.username,
        email=user_data.email,
        full_name=user_data.full_name,
        phone=user_data.phone,
        is_store_employee=user_data.is_store_employee,
        password_hash=get_password_hash(user_data.password),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    return new_user


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate with email or username and password.

    Returns:
        JWT access token and user information

    Raises:
        HTTPException 401: If credentials are invalid or the user is inactive
    """
    user = db.query(User).filter(
        or_(User.email == credentials.login, User.username == credentials.login)
    ).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is inactive"
        )

    access_token = create_access_token(
        data={"user_id": user.id, "username": user.username, "email": user.email}
    )

    return LoginResponse(access_token=access_token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return current_user


@router.post("/change-password", response_model=SuccessResponse)
def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change the authenticated user's password.

    Raises:
        HTTPException 400: If the current password is wrong
    """
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.password_hash = get_password_hash(data.new_password)
    current_user.require_password_change = False
    db.commit()

    return SuccessResponse(message="Password updated")
