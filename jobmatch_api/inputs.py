"""Validated inputs and partial patches accepted by the store."""

from __future__ import annotations

import json
from dataclasses import fields, replace
from typing import Any, Iterable, List, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from .errors import ValidationFailed
from .models import MAX_SALARY, Record

M = TypeVar("M", bound="CamelModel")
R = TypeVar("R", bound=Record)

JobType = Literal["full_time", "part_time", "contract", "remote"]
ExperienceLevel = Literal["entry", "mid", "senior", "executive"]
ApplicationStatus = Literal["pending", "under_review", "interview_scheduled", "rejected", "hired"]
Salary = Annotated[int, Field(ge=0, le=MAX_SALARY)]

LIST_FIELDS = frozenset({"skills"})


def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


class CamelModel(BaseModel):
    """Accepts camelCase (wire) or snake_case (Python) keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserInput(CamelModel):
    id: Optional[str] = None
    email: str = Field(min_length=1)
    password_hash: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    user_type: Optional[Literal["job_seeker", "employer", "unset"]] = None

    @field_validator("email")
    @classmethod
    def _strip_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("email must not be blank")
        return value

    @field_validator("user_type")
    @classmethod
    def _unset_is_none(cls, value: Optional[str]) -> Optional[str]:
        return None if value == "unset" else value


class JobSeekerProfilePatch(CamelModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    resume_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    location: Optional[str] = None
    salary_expectation: Optional[Salary] = None


class JobSeekerProfileInput(JobSeekerProfilePatch):
    user_id: str = Field(min_length=1)


class CompanyProfilePatch(CamelModel):
    company_name: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("company_name")
    @classmethod
    def _company_name_present(cls, value: Optional[str]) -> str:
        # only runs when the key is supplied, so an explicit null is rejected
        if value is None or not value.strip():
            raise ValueError("companyName must not be blank")
        return value.strip()


class CompanyProfileInput(CompanyProfilePatch):
    user_id: str = Field(min_length=1)
    company_name: str


class JobPostingPatch(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    requirements: Optional[str] = None
    salary_min: Optional[Salary] = None
    salary_max: Optional[Salary] = None
    location: Optional[str] = None
    job_type: Optional[JobType] = None
    experience_level: Optional[ExperienceLevel] = None
    skills: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("title", "description", "job_type", "experience_level", "is_active")
    @classmethod
    def _required_fields_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be cleared")
        return value

    @field_validator("title", "description")
    @classmethod
    def _text_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _not_blank(value)


class JobPostingInput(CamelModel):
    company_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    requirements: Optional[str] = None
    salary_min: Optional[Salary] = None
    salary_max: Optional[Salary] = None
    location: Optional[str] = None
    job_type: JobType
    experience_level: ExperienceLevel
    skills: List[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("title", "description")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class JobApplicationInput(CamelModel):
    job_id: str = Field(min_length=1)
    applicant_id: str = Field(min_length=1)
    status: ApplicationStatus = "pending"
    cover_letter: Optional[str] = None


class MessageInput(CamelModel):
    sender_id: str = Field(min_length=1)
    receiver_id: str = Field(min_length=1)
    content: str
    is_read: bool = False

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be empty")
        return value


def coerce_input(model: Type[M], data: Union[BaseModel, Mapping[str, Any]]) -> M:
    """Validate ``data`` as ``model`` or raise ``ValidationFailed``."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        raise ValidationFailed(
            f"Invalid {model.__name__} payload",
            {"errors": json.loads(exc.json(include_url=False))},
        ) from exc


def new_record(record_type: Type[R], payload: BaseModel, **stamps: Any) -> R:
    """Build a fresh record from a validated input plus store-issued values."""
    allowed = {item.name for item in fields(record_type)}  # type: ignore[arg-type]
    values = {key: value for key, value in payload.model_dump().items() if key in allowed}
    for key in LIST_FIELDS & values.keys():
        if values[key] is None:
            values[key] = []
    values.update(stamps)
    return record_type(**values)


def apply_patch(record: R, patch: BaseModel, exclude: Iterable[str] = (), **stamps: Any) -> R:
    """Return a copy of ``record`` with only the fields set on ``patch`` replaced."""
    allowed = {item.name for item in fields(record)}  # type: ignore[arg-type]
    changes = {
        key: value
        for key, value in patch.model_dump(exclude_unset=True, exclude=set(exclude)).items()
        if key in allowed
    }
    for key in LIST_FIELDS & changes.keys():
        if changes[key] is None:
            changes[key] = []
    changes.update(stamps)
    return replace(record, **changes)
