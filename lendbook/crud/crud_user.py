from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from uuid import uuid4
from datetime import datetime

from lendbook.db.core import UserDB
from lendbook.models.user import UserCreate


# ===== DATABASE OPERATIONS =====

def create_db_user(db: Session, user_data: UserCreate) -> UserDB:
    """Create a new user in the database"""

    # Check if email already exists
    existing_user = db.query(UserDB).filter(UserDB.email == user_data.email).first()
    if existing_user:
        raise ValueError("Email already registered")

    # Check if username already exists
    existing_username = db.query(UserDB).filter(UserDB.username == user_data.username).first()
    if existing_username:
        raise ValueError("Username already taken")

    db_user = UserDB(
        id=uuid4(),
        email=user_data.email,
        username=user_data.username,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        return db_user
    except IntegrityError:
        db.rollback()
        raise ValueError("User creation failed due to database constraint")


def read_db_user(db: Session, user_id: int) -> Optional[UserDB]:
    """Read a user by database ID"""
    return db.query(UserDB).filter(UserDB.db_id == user_id).first()


def read_db_users(db: Session, skip: int = 0, limit: int = 100) -> List[UserDB]:
    """Read a page of users"""
    return db.query(UserDB).order_by(UserDB.db_id).offset(skip).limit(limit).all()
