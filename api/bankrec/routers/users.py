from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bankrec.db import get_db
from bankrec.models.user import User
from bankrec.schemas.users import UserCreate, UserOut


router = APIRouter(prefix="/api/v1/users", tags=["users"])


def get_user_or_404(user_id: UUID, db: Session) -> User:
    return db.get(User, user_id) or (_ for _ in ()).throw(HTTPException(404, "User not found"))


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.email).all()


@router.post("/", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if db.query(User).filter_by(email=email).one_or_none():
        raise HTTPException(409, "A user with this email already exists")
    u = User(email=email, display_name=payload.display_name)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: UUID, db: Session = Depends(get_db)):
    return get_user_or_404(user_id, db)
