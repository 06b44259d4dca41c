"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they validate input, apply the
scholarship rules and persist aggregates via repositories.

Validation problems raise `ValueError`, missing records `NotFoundError`
and ownership violations `ForbiddenError`; controllers map them to 400,
404 and 403 responses.
"""

import math
from passlib.context import CryptContext
from typing import List, Optional
from . import models, repositories
from sqlmodel import Session

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

USER = 'USER'
ORG = 'ORG'
DECISIONS = ('approved', 'rejected')
ORG_EXISTS = "Organisation already exists with this registration ID"
USER_EXISTS = "User already exists with this email"


class NotFoundError(LookupError):
    """A referenced record does not exist."""


class ForbiddenError(PermissionError):
    """The caller does not own the requested resource."""


def _require(**fields):
    """Raise ValueError unless every keyword value is present and non-blank."""
    for value in fields.values():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError('All fields are required')


def _to_float(value, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number")
    # inf and nan cannot be rendered as JSON
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a number")
    return number


def _to_int(value, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f'{field} must be an integer')


def principal_for_user(user: models.User) -> dict:
    return {'id': user.id, 'type': USER, 'name': user.name}


def principal_for_org(org: models.Organisation) -> dict:
    return {'id': org.id, 'type': ORG, 'name': org.name, 'registration_id': org.registration_id}


class AuthService:
    """Registration and credential checks for users and organisations."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.org_repo = repositories.OrganisationRepository(session)

    def register_org(self, name: Optional[str], website_link: Optional[str], registration_id: Optional[str], password: Optional[str]) -> models.Organisation:
        """Create an organisation with a hashed password.

        Raises ValueError when a field is missing or the registration id
        is already taken.
        """
        _require(name=name, website_link=website_link, registration_id=registration_id, password=password)
        if self.org_repo.get_by_registration_id(registration_id):
            raise ValueError(ORG_EXISTS)
        org = models.Organisation(
            name=name,
            website_link=website_link,
            registration_id=registration_id,
            password_hash=PWD_CTX.hash(password),
        )
        try:
            return self.org_repo.create(org)
        except repositories.DuplicateRecordError:
            raise ValueError(ORG_EXISTS)

    def authenticate_org(self, registration_id: Optional[str], password: Optional[str]) -> Optional[models.Organisation]:
        """Return the organisation on valid credentials, `None` otherwise.

        An unknown registration id and a wrong password are
        indistinguishable to the caller.
        """
        _require(registration_id=registration_id, password=password)
        org = self.org_repo.get_by_registration_id(registration_id)
        if not org:
            return None
        if not PWD_CTX.verify(password, org.password_hash):
            return None
        return org

    def register_user(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> models.User:
        _require(name=name, email=email, password=password)
        email = email.strip().lower()
        if self.user_repo.get_by_email(email):
            raise ValueError(USER_EXISTS)
        user = models.User(name=name, email=email, password_hash=PWD_CTX.hash(password))
        try:
            return self.user_repo.create(user)
        except repositories.DuplicateRecordError:
            raise ValueError(USER_EXISTS)

    def authenticate_user(self, email: Optional[str], password: Optional[str]) -> Optional[models.User]:
        _require(email=email, password=password)
        user = self.user_repo.get_by_email(email.strip().lower())
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return user


class ProfileService:
    def __init__(self, session: Session):
        self.session = session
        self.profile_repo = repositories.ProfileRepository(session)

    def save(self, user_id: int, name, email, age, gender, college, degree, cgpa) -> models.Profile:
        """Store a new profile for `user_id`; profiles are never merged."""
        _require(name=name, email=email, age=age, gender=gender, college=college, degree=degree, cgpa=cgpa)
        profile = models.Profile(
            name=name,
            email=email,
            age=_to_int(age, 'age'),
            gender=gender,
            college=college,
            degree=degree,
            cgpa=_to_float(cgpa, 'cgpa'),
            user_id=user_id,
        )
        return self.profile_repo.create(profile)

    def list_for_user(self, user_id: int) -> List[models.Profile]:
        return self.profile_repo.list_for_user(user_id)


class ScholarshipService:
    """Post and list scholarships."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ScholarshipRepository(session)

    def post(self, org_id: int, scholarship_name, amount, eligibility=None, minimum_cgpa=None) -> models.Scholarship:
        """Create a scholarship owned by `org_id`.

        `amount` and `minimum_cgpa` are coerced to float; `eligibility`
        defaults to an empty string and `minimum_cgpa` to None.
        """
        if scholarship_name is None or (isinstance(scholarship_name, str) and not scholarship_name.strip()) or amount in (None, ''):
            raise ValueError('scholarship_name and amount are required')
        scholarship = models.Scholarship(
            scholarship_name=scholarship_name,
            eligibility=eligibility or '',
            amount=_to_float(amount, 'amount'),
            minimum_cgpa=None if minimum_cgpa in (None, '') else _to_float(minimum_cgpa, 'minimum_cgpa'),
            organisation_id=org_id,
        )
        return self.repo.create(scholarship)

    def list_all(self) -> List[models.Scholarship]:
        return self.repo.list_all()


class ApplicationService:
    """Apply to scholarships and decide on applications."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ApplicationRepository(session)
        self.profile_repo = repositories.ProfileRepository(session)
        self.scholarship_repo = repositories.ScholarshipRepository(session)

    def apply(self, user_id: int, scholarship_id: int) -> models.Application:
        """Create a pending application for `user_id`.

        Checks run in order: a saved profile is required, then the pair
        must not exist yet, then the scholarship must exist. The database
        unique key rejects a duplicate that slips past the lookup.
        """
        if not self.profile_repo.exists_for_user(user_id):
            raise ValueError('Please save your profile before applying.')
        if self.repo.find(user_id, scholarship_id):
            raise ValueError('Already applied to this scholarship')
        if not self.scholarship_repo.get(scholarship_id):
            raise NotFoundError('Scholarship not found')
        try:
            return self.repo.create(models.Application(user_id=user_id, scholarship_id=scholarship_id))
        except repositories.DuplicateApplicationError:
            raise ValueError('Already applied to this scholarship')

    def list_for_user(self, user_id: int) -> List[models.Application]:
        return self.repo.list_for_user(user_id)

    def list_for_organisation(self, caller_org_id: int, org_id: int) -> List[models.Application]:
        """Return applications to `org_id`'s scholarships if the caller is that org."""
        if caller_org_id != org_id:
            raise ForbiddenError('Forbidden')
        return self.repo.list_for_organisation(org_id)

    def decide(self, caller_org_id: int, application_id: int, decision: Optional[str]) -> models.Application:
        """Set the status of an application owned by the caller's organisation."""
        if decision not in DECISIONS:
            raise ValueError('Invalid decision')
        application = self.repo.get(application_id)
        if not application:
            raise NotFoundError('Application not found')
        if application.scholarship.organisation_id != caller_org_id:
            raise ForbiddenError('Forbidden')
        return self.repo.set_status(application, decision)
