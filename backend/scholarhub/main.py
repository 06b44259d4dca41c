"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the scholarship backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Guards from `auth` gate the
user-only and organisation-only routes.

Endpoints implemented:
- POST /api/register, POST /api/login
- POST /api/org/register, POST /api/org/login
- POST /api/logout
- GET /auth/status, GET /api/whoami
- GET /api/profile, POST /api/profile
- POST /api/scholarship, GET /api/scholarships
- POST /api/scholarship/{id}/apply
- GET /api/my/applications
- GET /api/org/{org_id}/applications
- POST /api/application/{id}/decision
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
import json
import logging
import time
import uuid
from typing import Optional
from .database import create_db_and_tables, get_session
from . import services, models
from .auth import get_principal, get_session_store, require_org, require_user, start_session, end_session
from .session_store import SessionStore
from .schemas import DecisionIn, OrgLoginIn, OrgRegisterIn, ProfileIn, ScholarshipIn, UserLoginIn, UserRegisterIn
from .config import settings

app = FastAPI(title="Scholarship Management API")
logger = logging.getLogger("scholarhub.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local frontends on another port working in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

_LOGGED_PREFIXES = ("/api", "/auth")


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith(_LOGGED_PREFIXES):
        context["status_code"] = response.status_code
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Answer malformed bodies and path parameters with 400 instead of 422."""
    logger.info("invalid request on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # the middleware has already logged the traceback
    return JSONResponse(status_code=500, content={"detail": "Server error"})


def _user_out(user: models.User, with_profiles: bool = False) -> dict:
    out = {'id': user.id, 'name': user.name, 'email': user.email, 'createdAt': user.created_at}
    if with_profiles:
        out['profiles'] = [_profile_out(p) for p in user.profiles]
    return out


def _org_out(org: models.Organisation) -> dict:
    return {
        'id': org.id,
        'name': org.name,
        'website_link': org.website_link,
        'registration_id': org.registration_id,
        'createdAt': org.created_at,
        'updatedAt': org.updated_at,
    }


def _profile_out(p: models.Profile) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'email': p.email,
        'age': p.age,
        'gender': p.gender,
        'college': p.college,
        'degree': p.degree,
        'cgpa': p.cgpa,
        'userId': p.user_id,
        'createdAt': p.created_at,
    }


def _scholarship_out(s: models.Scholarship) -> dict:
    return {
        'id': s.id,
        'scholarship_name': s.scholarship_name,
        'eligibility': s.eligibility,
        'minimum_cgpa': s.minimum_cgpa,
        'amount': s.amount,
        'organisationId': s.organisation_id,
        'createdAt': s.created_at,
        'updatedAt': s.updated_at,
    }


def _application_out(a: models.Application) -> dict:
    return {
        'id': a.id,
        'status': a.status,
        'userId': a.user_id,
        'scholarshipId': a.scholarship_id,
        'appliedAt': a.applied_at,
    }


@app.post('/api/register', status_code=201)
def register_user(payload: UserRegisterIn, request: Request, response: Response, db: Session = Depends(get_session), sessions: SessionStore = Depends(get_session_store)):
    """Register a user and log them in."""
    auth = services.AuthService(db)
    try:
        user = auth.register_user(payload.name, payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    start_session(request, response, services.principal_for_user(user), sessions)
    return {'message': 'User registered', 'user': _user_out(user)}


@app.post('/api/login')
def login_user(payload: UserLoginIn, request: Request, response: Response, db: Session = Depends(get_session), sessions: SessionStore = Depends(get_session_store)):
    auth = services.AuthService(db)
    try:
        user = auth.authenticate_user(payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not user:
        raise HTTPException(status_code=400, detail='Invalid credentials')
    start_session(request, response, services.principal_for_user(user), sessions)
    return {'message': 'Logged in', 'user': _user_out(user)}


@app.post('/api/org/register', status_code=201)
def register_org(payload: OrgRegisterIn, request: Request, response: Response, db: Session = Depends(get_session), sessions: SessionStore = Depends(get_session_store)):
    """Register an organisation and log it in.

    A second registration with the same `registration_id` is rejected
    with 400 and never creates a row.
    """
    auth = services.AuthService(db)
    try:
        org = auth.register_org(payload.name, payload.website_link, payload.registration_id, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    start_session(request, response, services.principal_for_org(org), sessions)
    return {'message': 'Organisation registered', 'organisation': _org_out(org)}


@app.post('/api/org/login')
def login_org(payload: OrgLoginIn, request: Request, response: Response, db: Session = Depends(get_session), sessions: SessionStore = Depends(get_session_store)):
    """Authenticate an organisation by registration id and password.

    Unknown ids and wrong passwords get the same 400 response.
    """
    auth = services.AuthService(db)
    try:
        org = auth.authenticate_org(payload.registration_id, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not org:
        raise HTTPException(status_code=400, detail='Invalid credentials')
    start_session(request, response, services.principal_for_org(org), sessions)
    return {'message': 'Logged in', 'organisation': _org_out(org)}


@app.post('/api/logout')
def logout(request: Request, response: Response, sessions: SessionStore = Depends(get_session_store)):
    end_session(request, response, sessions)
    return {'message': 'Logged out'}


@app.get('/auth/status')
def auth_status(principal: Optional[dict] = Depends(get_principal)):
    """Report whether the caller is logged in and as what."""
    if principal:
        return {'loggedIn': True, 'type': principal['type'], 'user': principal}
    return {'loggedIn': False}


@app.get('/api/whoami')
def whoami(principal: Optional[dict] = Depends(get_principal)):
    return {'session': principal}


@app.get('/api/profile')
def list_profiles(db: Session = Depends(get_session), user: dict = Depends(require_user)):
    """Return every profile saved by the logged-in user."""
    profiles = services.ProfileService(db).list_for_user(user['id'])
    return [_profile_out(p) for p in profiles]


@app.post('/api/profile', status_code=201)
def save_profile(payload: ProfileIn, db: Session = Depends(get_session), user: dict = Depends(require_user)):
    """Save a new profile for the logged-in user."""
    svc = services.ProfileService(db)
    try:
        profile = svc.save(
            user['id'],
            name=payload.name,
            email=payload.email,
            age=payload.age,
            gender=payload.gender,
            college=payload.college,
            degree=payload.degree,
            cgpa=payload.cgpa,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'message': 'Profile saved', 'profile': _profile_out(profile)}


@app.post('/api/scholarship', status_code=201)
def post_scholarship(payload: ScholarshipIn, db: Session = Depends(get_session), org: dict = Depends(require_org)):
    """Post a scholarship owned by the logged-in organisation."""
    svc = services.ScholarshipService(db)
    try:
        scholarship = svc.post(
            org['id'],
            scholarship_name=payload.scholarship_name,
            amount=payload.amount,
            eligibility=payload.eligibility,
            minimum_cgpa=payload.minimum_cgpa,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'message': 'Scholarship posted', 'scholarship': _scholarship_out(scholarship)}


@app.get('/api/scholarships')
def list_scholarships(db: Session = Depends(get_session)):
    """List every scholarship with its organisation and application statuses.

    Applications are reduced to `userId` and `status` so a frontend can
    mark the ones the current user already applied to.
    """
    out = []
    for s in services.ScholarshipService(db).list_all():
        item = _scholarship_out(s)
        item['organisation'] = _org_out(s.organisation)
        item['applications'] = [{'userId': a.user_id, 'status': a.status} for a in s.applications]
        out.append(item)
    return out


@app.post('/api/scholarship/{scholarship_id}/apply', status_code=201)
def apply(scholarship_id: int, db: Session = Depends(get_session), user: dict = Depends(require_user)):
    """Apply the logged-in user to a scholarship.

    Requires a saved profile and rejects a second application to the same
    scholarship.
    """
    svc = services.ApplicationService(db)
    try:
        application = svc.apply(user['id'], scholarship_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except services.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("application %s created by user %s for scholarship %s", application.id, user['id'], scholarship_id)
    return {'message': 'Application submitted', 'application': _application_out(application)}


@app.get('/api/my/applications')
def my_applications(db: Session = Depends(get_session), user: dict = Depends(require_user)):
    """Return the logged-in user's applications, newest first."""
    out = []
    for a in services.ApplicationService(db).list_for_user(user['id']):
        item = _application_out(a)
        item['scholarship'] = _scholarship_out(a.scholarship)
        out.append(item)
    return out


@app.get('/api/org/{org_id}/applications')
def org_applications(org_id: int, db: Session = Depends(get_session), org: dict = Depends(require_org)):
    """Return applications to the organisation's scholarships, newest first.

    Each application carries the applicant (with profiles) and the
    scholarship. An organisation may only read its own list.
    """
    svc = services.ApplicationService(db)
    try:
        applications = svc.list_for_organisation(org['id'], org_id)
    except services.ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    out = []
    for a in applications:
        item = _application_out(a)
        item['user'] = _user_out(a.user, with_profiles=True)
        item['scholarship'] = _scholarship_out(a.scholarship)
        out.append(item)
    return out


@app.post('/api/application/{application_id}/decision')
def decide(application_id: int, payload: DecisionIn, db: Session = Depends(get_session), org: dict = Depends(require_org)):
    """Approve or reject an application to one of the caller's scholarships."""
    svc = services.ApplicationService(db)
    try:
        application = svc.decide(org['id'], application_id, payload.decision)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except services.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except services.ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    logger.info("application %s marked %s by organisation %s", application.id, application.status, org['id'])
    return {'message': 'Application updated', 'application': _application_out(application)}


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
