"""Record types held by the local document store.

Records are plain dataclasses with snake_case attributes. The persisted
snapshot and the HTTP responses use camelCase keys, so every record converts
through ``to_dict``/``from_dict`` using the same name mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import TypeAdapter

USER_TYPES = ("job_seeker", "employer")
JOB_TYPES = ("full_time", "part_time", "contract", "remote")
EXPERIENCE_LEVELS = ("entry", "mid", "senior", "executive")
APPLICATION_STATUSES = ("pending", "under_review", "interview_scheduled", "rejected", "hired")
MAX_SALARY = 2_147_483_647

R = TypeVar("R", bound="Record")


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_key(value: Optional[str]) -> float:
    """Sort key for stored timestamps; unparseable values sort first."""
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


class Record:
    """camelCase (de)serialization shared by all persisted records."""

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for item in fields(self):  # type: ignore[arg-type]
            value = getattr(self, item.name)
            if isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            payload[to_camel(item.name)] = value
        return payload

    @classmethod
    def from_dict(cls: Type[R], data: Mapping[str, Any]) -> R:
        """Build a record from a snapshot entry.

        Values are checked against the field annotations, so a missing key or
        a wrongly typed value raises ``ValueError`` (pydantic's
        ``ValidationError``); unknown keys are ignored.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"{cls.__name__} entry must be an object")
        kwargs: Dict[str, Any] = {}
        for item in fields(cls):  # type: ignore[arg-type]
            key = to_camel(item.name)
            if key in data:
                kwargs[item.name] = data[key]
            elif item.name in data:
                kwargs[item.name] = data[item.name]
        return _record_adapter(cls).validate_python(kwargs)


@dataclass(kw_only=True)
class User(Record):
    id: str
    email: str
    password_hash: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    user_type: Optional[str] = None
    created_at: str
    updated_at: str

    def public_view(self) -> Dict[str, Any]:
        """Projection safe to hand to other users (no password hash)."""
        return {
            "id": self.id,
            "email": self.email,
            "displayName": self.display_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profileImageUrl": self.profile_image_url,
            "userType": self.user_type,
        }


@dataclass(kw_only=True)
class JobSeekerProfile(Record):
    id: str
    user_id: str
    title: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    experience: Optional[str] = None
    education: Optional[str] = None
    resume_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    location: Optional[str] = None
    salary_expectation: Optional[int] = None
    created_at: str
    updated_at: str


@dataclass(kw_only=True)
class CompanyProfile(Record):
    id: str
    user_id: str
    company_name: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: str
    updated_at: str


@dataclass(kw_only=True)
class JobPosting(Record):
    id: str
    company_id: str
    title: str
    description: str
    requirements: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    location: Optional[str] = None
    job_type: str
    experience_level: str
    skills: List[str] = field(default_factory=list)
    is_active: bool = True
    created_at: str
    updated_at: str


@dataclass(kw_only=True)
class JobApplication(Record):
    id: str
    job_id: str
    applicant_id: str
    status: str = "pending"
    cover_letter: Optional[str] = None
    applied_at: str
    updated_at: str


@dataclass(kw_only=True)
class Message(Record):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    created_at: str


@dataclass(kw_only=True)
class SessionRecord(Record):
    id: str
    user_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    expires_at: str


@dataclass
class ConversationSummary:
    user_id: str
    last_message: Message
    unread_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "lastMessage": self.last_message.to_dict(),
            "unreadCount": self.unread_count,
        }


@dataclass
class Database:
    """All collections, in snapshot key order."""

    users: List[User] = field(default_factory=list)
    job_seeker_profiles: List[JobSeekerProfile] = field(default_factory=list)
    company_profiles: List[CompanyProfile] = field(default_factory=list)
    job_postings: List[JobPosting] = field(default_factory=list)
    job_applications: List[JobApplication] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    sessions: List[SessionRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {to_camel(item.name): [row.to_dict() for row in getattr(self, item.name)] for item in fields(self)}

    @classmethod
    def from_dict(cls, payload: Any) -> "Database":
        """Parse a snapshot; raises ``TypeError``/``ValueError`` on bad shape."""
        if not isinstance(payload, dict):
            raise ValueError("snapshot root must be an object")
        database = cls()
        for name, record_type in COLLECTION_TYPES.items():
            key = to_camel(name)
            raw_rows = payload.get(key, [])
            if not isinstance(raw_rows, list):
                raise ValueError(f"snapshot collection '{key}' must be a list")
            setattr(database, name, [record_type.from_dict(row) for row in raw_rows])
        return database


COLLECTION_TYPES: Dict[str, Type[Record]] = {
    "users": User,
    "job_seeker_profiles": JobSeekerProfile,
    "company_profiles": CompanyProfile,
    "job_postings": JobPosting,
    "job_applications": JobApplication,
    "messages": Message,
    "sessions": SessionRecord,
}


@lru_cache(maxsize=None)
def _record_adapter(record_type: Type[R]) -> TypeAdapter:
    return TypeAdapter(record_type)
