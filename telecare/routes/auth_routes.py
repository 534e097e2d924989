# telecare/routes/auth_routes.py
from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from telecare.auth.deps import get_current_user
from telecare.auth.jwt import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from telecare.auth.schemas import RefreshIn, Token, UserCreate, UserOut
from telecare.db.session import get_db
from telecare.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginAny(BaseModel):
    email: EmailStr | None = None
    username: EmailStr | None = None
    password: str


def _tokens_for(user: User) -> Token:
    claims = {"sub": str(user.id), "email": user.email}
    return Token(access_token=create_access_token(claims), refresh_token=create_refresh_token(claims))


@router.post("/login", response_model=Token)
def login(payload: LoginAny = Body(...), db: Session = Depends(get_db)):
    email = payload.email or payload.username
    if not email:
        raise HTTPException(status_code=422, detail="Provide 'email' or 'username'")
    user = db.query(User).filter(User.email == str(email)).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _tokens_for(user)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Token)
def register(payload: UserCreate = Body(...), db: Session = Depends(get_db)):
    """Create a new user account and return a token pair."""
    existing = db.query(User).filter(User.email == str(payload.email)).first()
    if existing:
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=str(payload.email),
        hashed_password=hash_password(payload.password),
        name=payload.name,
    )
    db.add(user)
    db.commit()
    return _tokens_for(user)


@router.post("/refresh", response_model=Token)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    data = verify_refresh_token(payload.refresh_token)
    if not data or not data.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.query(User).filter(User.id == str(data["sub"])).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    access = create_access_token({"sub": str(user.id), "email": user.email})
    return Token(access_token=access)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user
