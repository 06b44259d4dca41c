"""Pydantic request schemas used by the API.

Fields are declared optional so that missing values reach the services,
which answer them with the same 400 messages for every route. Numeric
fields also accept strings because browser forms post them that way.
"""

from pydantic import BaseModel
from typing import Optional, Union


class OrgRegisterIn(BaseModel):
    """Payload for organisation registration."""
    name: Optional[str] = None
    website_link: Optional[str] = None
    registration_id: Optional[str] = None
    password: Optional[str] = None


class OrgLoginIn(BaseModel):
    """Payload for organisation login."""
    registration_id: Optional[str] = None
    password: Optional[str] = None


class UserRegisterIn(BaseModel):
    """Payload for user registration."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserLoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileIn(BaseModel):
    """Academic profile saved by a user before applying."""
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[Union[int, str]] = None
    gender: Optional[str] = None
    college: Optional[str] = None
    degree: Optional[str] = None
    cgpa: Optional[Union[float, str]] = None


class ScholarshipIn(BaseModel):
    """Request format for posting a scholarship."""
    scholarship_name: Optional[str] = None
    eligibility: Optional[str] = None
    amount: Optional[Union[float, str]] = None
    minimum_cgpa: Optional[Union[float, str]] = None


class DecisionIn(BaseModel):
    """Organisation decision on an application: `approved` or `rejected`."""
    decision: Optional[str] = None
