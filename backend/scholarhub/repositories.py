"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
profiles, organisations, scholarships, applications). Repositories
return SQLModel objects and perform commits/refreshes where appropriate.
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from . import models


class DuplicateRecordError(Exception):
    """Raised when a unique key rejects an insert."""


class DuplicateApplicationError(DuplicateRecordError):
    """Raised when the (user, scholarship) unique key rejects an insert."""


def _commit_new(session: Session, record, error=DuplicateRecordError):
    """Add and commit `record`, turning a unique-key conflict into `error`."""
    session.add(record)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise error(str(exc.orig)) from exc
    session.refresh(record)
    return record


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance.

        Raises `DuplicateRecordError` if the email is already taken.
        """
        return _commit_new(self.session, user)

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class ProfileRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, profile: models.Profile) -> models.Profile:
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def list_for_user(self, user_id: int) -> List[models.Profile]:
        """Return every profile saved by `user_id`, oldest first."""
        stmt = select(models.Profile).where(models.Profile.user_id == user_id).order_by(models.Profile.id)
        return self.session.exec(stmt).all()

    def exists_for_user(self, user_id: int) -> bool:
        stmt = select(models.Profile.id).where(models.Profile.user_id == user_id)
        return self.session.exec(stmt).first() is not None


class OrganisationRepository:
    """CRUD operations for `Organisation` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, org: models.Organisation) -> models.Organisation:
        """Persist `org`; a taken registration id raises `DuplicateRecordError`."""
        return _commit_new(self.session, org)

    def get_by_registration_id(self, registration_id: str) -> Optional[models.Organisation]:
        """Return an `Organisation` by registration id or `None`."""
        stmt = select(models.Organisation).where(models.Organisation.registration_id == registration_id)
        return self.session.exec(stmt).first()

    def get(self, org_id: int) -> Optional[models.Organisation]:
        return self.session.get(models.Organisation, org_id)


class ScholarshipRepository:
    """CRUD operations for `Scholarship` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, scholarship: models.Scholarship) -> models.Scholarship:
        self.session.add(scholarship)
        self.session.commit()
        self.session.refresh(scholarship)
        return scholarship

    def get(self, scholarship_id: int) -> Optional[models.Scholarship]:
        return self.session.get(models.Scholarship, scholarship_id)

    def list_all(self) -> List[models.Scholarship]:
        """Return the whole scholarship table ordered by id."""
        stmt = select(models.Scholarship).order_by(models.Scholarship.id)
        return self.session.exec(stmt).all()


class ApplicationRepository:
    """Persist applications and query them per user or per organisation."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, application: models.Application) -> models.Application:
        """Insert `application` relying on the unique (user, scholarship) key.

        Raises `DuplicateApplicationError` when the key already exists, which
        covers concurrent requests that both passed an earlier lookup.
        """
        return _commit_new(self.session, application, DuplicateApplicationError)

    def get(self, application_id: int) -> Optional[models.Application]:
        return self.session.get(models.Application, application_id)

    def find(self, user_id: int, scholarship_id: int) -> Optional[models.Application]:
        """Return the application of `user_id` to `scholarship_id`, if any."""
        stmt = select(models.Application).where(
            models.Application.user_id == user_id,
            models.Application.scholarship_id == scholarship_id
        )
        return self.session.exec(stmt).first()

    def list_for_user(self, user_id: int) -> List[models.Application]:
        stmt = (
            select(models.Application)
            .where(models.Application.user_id == user_id)
            .order_by(models.Application.applied_at.desc(), models.Application.id.desc())
        )
        return self.session.exec(stmt).all()

    def list_for_organisation(self, org_id: int) -> List[models.Application]:
        """Return applications to any scholarship of `org_id`, newest first."""
        stmt = (
            select(models.Application)
            .join(models.Scholarship, models.Scholarship.id == models.Application.scholarship_id)
            .where(models.Scholarship.organisation_id == org_id)
            .order_by(models.Application.applied_at.desc(), models.Application.id.desc())
        )
        return self.session.exec(stmt).all()

    def set_status(self, application: models.Application, status: str) -> models.Application:
        """Update only the status field of `application`."""
        application.status = status
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application
