"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
"""

from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered applicant.

    Fields:
    - `email`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)
    profiles: List['Profile'] = Relationship(back_populates='user')
    applications: List['Application'] = Relationship(back_populates='user')


class Profile(SQLModel, table=True):
    """Academic details a user saves before applying.

    A user may keep several profiles; none are de-duplicated.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    age: int
    gender: str
    college: str
    degree: str
    cgpa: float
    user_id: int = Field(foreign_key='user.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    user: Optional[User] = Relationship(back_populates='profiles')


class Organisation(SQLModel, table=True):
    """A scholarship provider identified by its registration id."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    website_link: str
    registration_id: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={'onupdate': _utcnow})
    scholarships: List['Scholarship'] = Relationship(back_populates='organisation')


class Scholarship(SQLModel, table=True):
    """A scholarship posted by an `Organisation`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    scholarship_name: str
    eligibility: Optional[str] = None
    minimum_cgpa: Optional[float] = None
    amount: float
    organisation_id: int = Field(foreign_key='organisation.id', index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column_kwargs={'onupdate': _utcnow})
    organisation: Optional[Organisation] = Relationship(back_populates='scholarships')
    applications: List['Application'] = Relationship(back_populates='scholarship')


class Application(SQLModel, table=True):
    """A user's application to a scholarship.

    `status` moves from `pending` to either `approved` or `rejected`. The
    (user_id, scholarship_id) pair is unique at the database level.
    """
    __table_args__ = (
        UniqueConstraint('user_id', 'scholarship_id', name='uq_application_user_scholarship'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    status: str = Field(default='pending')
    user_id: int = Field(foreign_key='user.id', index=True)
    scholarship_id: int = Field(foreign_key='scholarship.id', index=True)
    applied_at: datetime = Field(default_factory=_utcnow)
    user: Optional[User] = Relationship(back_populates='applications')
    scholarship: Optional[Scholarship] = Relationship(back_populates='applications')
