"""Single-file JSON document store for the job board."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel

from .errors import ConflictError, NotFoundError, StorageError, ValidationFailed
from .inputs import (
    CompanyProfileInput,
    CompanyProfilePatch,
    JobApplicationInput,
    JobPostingInput,
    JobPostingPatch,
    JobSeekerProfileInput,
    JobSeekerProfilePatch,
    MessageInput,
    UserInput,
    apply_patch,
    coerce_input,
    new_record,
)
from .models import (
    APPLICATION_STATUSES,
    CompanyProfile,
    ConversationSummary,
    Database,
    JobApplication,
    JobPosting,
    JobSeekerProfile,
    Message,
    SessionRecord,
    User,
    format_timestamp,
    timestamp_key,
)
from .queries import (
    JobFilters,
    applications_for_applicant,
    applications_for_job,
    conversation_between,
    filter_job_postings,
    postings_for_company,
    search_users,
    summarize_conversations,
)
from .redaction import redact_for_log

DATABASE_FILENAME = "database.json"
DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS = 60 * 60
logger = logging.getLogger("jobmatch.api")
audit_logger = logging.getLogger("jobmatch.audit")

T = TypeVar("T")
Payload = Union[BaseModel, Mapping[str, Any]]


def make_id() -> str:
    return str(uuid.uuid4())


def _find_index(rows: List[T], predicate: Callable[[T], bool]) -> int:
    for index, row in enumerate(rows):
        if predicate(row):
            return index
    return -1


def _first(rows: List[T], predicate: Callable[[T], bool]) -> Optional[T]:
    index = _find_index(rows, predicate)
    return rows[index] if index >= 0 else None


def _snapshot(value: T) -> T:
    return copy.deepcopy(value)


def _same_email(left: str, right: str) -> bool:
    return left.strip().casefold() == right.strip().casefold()


def _check_salary_range(posting: JobPosting) -> None:
    if posting.salary_min is not None and posting.salary_max is not None and posting.salary_min > posting.salary_max:
        raise ValidationFailed(
            "salaryMin must not exceed salaryMax",
            {"salaryMin": posting.salary_min, "salaryMax": posting.salary_max},
        )


class LocalStorage:
    """In-process document store persisted as one JSON snapshot.

    Every public operation runs under one asyncio lock and every mutation
    rewrites the whole snapshot before the lock is released. This is a
    single-writer design: two processes pointed at the same data directory
    will overwrite each other's snapshots.
    """

    def __init__(
        self,
        data_dir: Union[str, Path] = "./data",
        session_sweep_interval_seconds: float = DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS,
        allow_duplicate_applications: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / DATABASE_FILENAME
        self.session_sweep_interval_seconds = max(session_sweep_interval_seconds, 0)
        self.allow_duplicate_applications = allow_duplicate_applications
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._db = Database()
        self._lock = asyncio.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Load the snapshot and start the periodic session sweep."""
        await self.init()
        if self._sweep_task is None and self.session_sweep_interval_seconds > 0:
            self._sweep_task = asyncio.create_task(self._session_sweep_worker())

    async def stop(self) -> None:
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    async def init(self) -> None:
        try:
            await asyncio.to_thread(self.data_dir.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("storage_init_failed path=%s error=%s", self.data_dir, exc)
            raise StorageError("Cannot create data directory", {"path": str(self.data_dir)}) from exc

        try:
            raw: Optional[bytes] = await asyncio.to_thread(self.db_path.read_bytes)
        except FileNotFoundError:
            raw = None
        except OSError as exc:
            logger.error("storage_read_failed path=%s error=%s", self.db_path, exc)
            raise StorageError("Cannot read data file", {"path": str(self.db_path)}) from exc

        async with self._lock:
            if raw is not None:
                try:
                    self._db = Database.from_dict(json.loads(raw.decode("utf-8")))
                except (TypeError, ValueError) as exc:
                    try:
                        backup = await asyncio.to_thread(self._quarantine_snapshot)
                    except OSError as move_exc:
                        logger.error("storage_quarantine_failed path=%s error=%s", self.db_path, move_exc)
                        raise StorageError("Cannot move unreadable data file aside", {"path": str(self.db_path)}) from move_exc
                    logger.error(
                        "storage_snapshot_unreadable path=%s backup=%s error=%s starting_empty=true",
                        self.db_path,
                        backup,
                        exc,
                    )
                    self._db = Database()
                else:
                    logger.info(
                        "storage_loaded path=%s users=%s job_postings=%s sessions=%s",
                        self.db_path,
                        len(self._db.users),
                        len(self._db.job_postings),
                        len(self._db.sessions),
                    )
                    return
            else:
                self._db = Database()
                logger.info("storage_created path=%s", self.db_path)
            await self._save_locked()

    async def save(self) -> None:
        async with self._lock:
            await self._save_locked()

    async def _save_locked(self) -> None:
        payload = self._db.to_dict()
        try:
            await asyncio.to_thread(self._write_snapshot, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("storage_save_failed path=%s error=%s", self.db_path, exc)
            raise StorageError("Failed to persist data file", {"path": str(self.db_path)}) from exc

    def _write_snapshot(self, payload: Dict[str, Any]) -> None:
        temp_path = self.db_path.with_suffix(self.db_path.suffix + ".tmp")
        temp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        temp_path.replace(self.db_path)

    def _quarantine_snapshot(self) -> Path:
        stamp = self._clock().strftime("%Y%m%dT%H%M%S%f")
        backup = self.db_path.with_name(f"{self.db_path.name}.corrupt-{stamp}")
        self.db_path.replace(backup)
        return backup

    def current_time(self) -> datetime:
        return self._clock()

    def _now(self) -> str:
        return format_timestamp(self._clock())

    def _restamp(self, previous: str) -> str:
        now = self._now()
        return previous if timestamp_key(now) < timestamp_key(previous) else now

    def _audit(self, action: str, **details: Any) -> None:
        audit_logger.info("audit action=%s details=%s", action, redact_for_log(details))

    # -- users ---------------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._lock:
            return _snapshot(_first(self._db.users, lambda u: u.id == user_id))

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self._lock:
            return _snapshot(_first(self._db.users, lambda u: _same_email(u.email, email)))

    async def upsert_user(self, data: Payload, create_only: bool = False) -> User:
        """Merge into the user matching ``id`` (or else ``email``), or create one.

        With ``create_only`` an existing match raises ``ConflictError`` instead
        of being merged, which is how registration rejects a taken email.
        """
        payload = coerce_input(UserInput, data)
        async with self._lock:
            users = self._db.users
            index = _find_index(users, lambda u: u.id == payload.id) if payload.id else -1
            if index < 0:
                index = _find_index(users, lambda u: _same_email(u.email, payload.email))
            owner = _first(users, lambda u: _same_email(u.email, payload.email))

            if index >= 0 and create_only:
                raise ConflictError("User already exists")
            if index >= 0:
                existing = users[index]
                if owner is not None and owner.id != existing.id:
                    raise ConflictError("Email is already registered to another account")
                user = apply_patch(existing, payload, exclude={"id"}, updated_at=self._restamp(existing.updated_at))
                users[index] = user
                action = "user_updated"
            else:
                now = self._now()
                user = new_record(
                    User,
                    payload,
                    id=payload.id or make_id(),
                    password_hash=payload.password_hash or "",
                    created_at=now,
                    updated_at=now,
                )
                users.append(user)
                action = "user_created"
            await self._save_locked()
            result = _snapshot(user)
        self._audit(action, user_id=result.id, user_type=result.user_type)
        return result

    async def search_users(self, current_user_id: str, term: str) -> List[Dict[str, Any]]:
        async with self._lock:
            return _snapshot(search_users(self._db.users, current_user_id, term))

    # -- job seeker profiles -------------------------------------------------

    async def get_job_seeker_profile(self, user_id: str) -> Optional[JobSeekerProfile]:
        async with self._lock:
            return _snapshot(_first(self._db.job_seeker_profiles, lambda p: p.user_id == user_id))

    async def create_job_seeker_profile(self, data: Payload) -> JobSeekerProfile:
        payload = coerce_input(JobSeekerProfileInput, data)
        async with self._lock:
            self._require_user_locked(payload.user_id)
            if _first(self._db.job_seeker_profiles, lambda p: p.user_id == payload.user_id):
                raise ConflictError("Job seeker profile already exists", {"userId": payload.user_id})
            now = self._now()
            profile = new_record(JobSeekerProfile, payload, id=make_id(), created_at=now, updated_at=now)
            self._db.job_seeker_profiles.append(profile)
            await self._save_locked()
            result = _snapshot(profile)
        self._audit("job_seeker_profile_created", profile_id=result.id, user_id=result.user_id)
        return result

    async def update_job_seeker_profile(self, user_id: str, patch: Payload) -> JobSeekerProfile:
        changes = coerce_input(JobSeekerProfilePatch, patch)
        async with self._lock:
            rows = self._db.job_seeker_profiles
            index = _find_index(rows, lambda p: p.user_id == user_id)
            if index < 0:
                raise NotFoundError("Job seeker profile not found", {"userId": user_id})
            profile = apply_patch(rows[index], changes, updated_at=self._restamp(rows[index].updated_at))
            rows[index] = profile
            await self._save_locked()
            result = _snapshot(profile)
        self._audit("job_seeker_profile_updated", profile_id=result.id, user_id=user_id)
        return result

    # -- company profiles ----------------------------------------------------

    async def get_company_profile(self, user_id: str) -> Optional[CompanyProfile]:
        async with self._lock:
            return _snapshot(_first(self._db.company_profiles, lambda p: p.user_id == user_id))

    async def create_company_profile(self, data: Payload) -> CompanyProfile:
        payload = coerce_input(CompanyProfileInput, data)
        async with self._lock:
            self._require_user_locked(payload.user_id)
            if _first(self._db.company_profiles, lambda p: p.user_id == payload.user_id):
                raise ConflictError("Company profile already exists", {"userId": payload.user_id})
            now = self._now()
            profile = new_record(CompanyProfile, payload, id=make_id(), created_at=now, updated_at=now)
            self._db.company_profiles.append(profile)
            await self._save_locked()
            result = _snapshot(profile)
        self._audit("company_profile_created", profile_id=result.id, user_id=result.user_id)
        return result

    async def update_company_profile(self, user_id: str, patch: Payload) -> CompanyProfile:
        changes = coerce_input(CompanyProfilePatch, patch)
        async with self._lock:
            rows = self._db.company_profiles
            index = _find_index(rows, lambda p: p.user_id == user_id)
            if index < 0:
                raise NotFoundError("Company profile not found", {"userId": user_id})
            profile = apply_patch(rows[index], changes, updated_at=self._restamp(rows[index].updated_at))
            rows[index] = profile
            await self._save_locked()
            result = _snapshot(profile)
        self._audit("company_profile_updated", profile_id=result.id, user_id=user_id)
        return result

    # -- job postings --------------------------------------------------------

    async def create_job_posting(self, data: Payload) -> JobPosting:
        payload = coerce_input(JobPostingInput, data)
        async with self._lock:
            if not _first(self._db.company_profiles, lambda p: p.id == payload.company_id):
                raise NotFoundError("Company profile not found", {"companyId": payload.company_id})
            now = self._now()
            posting = new_record(JobPosting, payload, id=make_id(), created_at=now, updated_at=now)
            _check_salary_range(posting)
            self._db.job_postings.append(posting)
            await self._save_locked()
            result = _snapshot(posting)
        self._audit("job_posting_created", job_id=result.id, company_id=result.company_id)
        return result

    async def get_job_postings(self, filters: Union[JobFilters, Mapping[str, Any], None] = None) -> List[JobPosting]:
        if not isinstance(filters, JobFilters):
            filters = JobFilters.from_mapping(filters)
        async with self._lock:
            return _snapshot(filter_job_postings(self._db.job_postings, filters))

    async def get_job_posting_by_id(self, job_id: str) -> Optional[JobPosting]:
        async with self._lock:
            return _snapshot(_first(self._db.job_postings, lambda p: p.id == job_id))

    async def get_job_postings_by_company(self, company_id: str) -> List[JobPosting]:
        async with self._lock:
            return _snapshot(postings_for_company(self._db.job_postings, company_id))

    async def update_job_posting(self, job_id: str, patch: Payload) -> JobPosting:
        changes = coerce_input(JobPostingPatch, patch)
        async with self._lock:
            rows = self._db.job_postings
            index = _find_index(rows, lambda p: p.id == job_id)
            if index < 0:
                raise NotFoundError("Job posting not found", {"jobId": job_id})
            posting = apply_patch(rows[index], changes, updated_at=self._restamp(rows[index].updated_at))
            _check_salary_range(posting)
            rows[index] = posting
            await self._save_locked()
            result = _snapshot(posting)
        self._audit("job_posting_updated", job_id=job_id, is_active=result.is_active)
        return result

    async def deactivate_job_posting(self, job_id: str) -> JobPosting:
        """Soft-delete: hide the posting from search but keep the record."""
        return await self.update_job_posting(job_id, JobPostingPatch(is_active=False))

    # -- job applications ----------------------------------------------------

    async def create_job_application(self, data: Payload) -> JobApplication:
        payload = coerce_input(JobApplicationInput, data)
        async with self._lock:
            if not _first(self._db.job_postings, lambda p: p.id == payload.job_id):
                raise NotFoundError("Job posting not found", {"jobId": payload.job_id})
            if not _first(self._db.job_seeker_profiles, lambda p: p.id == payload.applicant_id):
                raise NotFoundError("Job seeker profile not found", {"applicantId": payload.applicant_id})
            if not self.allow_duplicate_applications and _first(
                self._db.job_applications,
                lambda a: a.job_id == payload.job_id and a.applicant_id == payload.applicant_id,
            ):
                raise ConflictError(
                    "Already applied to this job",
                    {"jobId": payload.job_id, "applicantId": payload.applicant_id},
                )
            now = self._now()
            application = new_record(JobApplication, payload, id=make_id(), applied_at=now, updated_at=now)
            self._db.job_applications.append(application)
            await self._save_locked()
            result = _snapshot(application)
        self._audit("job_application_created", application_id=result.id, job_id=result.job_id)
        return result

    async def get_job_application(self, application_id: str) -> Optional[JobApplication]:
        async with self._lock:
            return _snapshot(_first(self._db.job_applications, lambda a: a.id == application_id))

    async def get_job_applications_by_applicant(self, applicant_id: str) -> List[JobApplication]:
        async with self._lock:
            return _snapshot(applications_for_applicant(self._db.job_applications, applicant_id))

    async def get_job_applications_by_job(self, job_id: str) -> List[JobApplication]:
        async with self._lock:
            return _snapshot(applications_for_job(self._db.job_applications, job_id))

    async def update_job_application_status(self, application_id: str, status: str) -> JobApplication:
        if status not in APPLICATION_STATUSES:
            raise ValidationFailed(
                "Invalid application status",
                {"status": status, "allowed": list(APPLICATION_STATUSES)},
            )
        async with self._lock:
            rows = self._db.job_applications
            index = _find_index(rows, lambda a: a.id == application_id)
            if index < 0:
                raise NotFoundError("Job application not found", {"applicationId": application_id})
            previous = rows[index]
            rows[index] = replace(previous, status=status, updated_at=self._restamp(previous.updated_at))
            await self._save_locked()
            result = _snapshot(rows[index])
        self._audit("job_application_status_changed", application_id=application_id, status=status)
        return result

    # -- messages ------------------------------------------------------------

    async def create_message(self, data: Payload) -> Message:
        payload = coerce_input(MessageInput, data)
        async with self._lock:
            self._require_user_locked(payload.sender_id)
            self._require_user_locked(payload.receiver_id)
            message = new_record(Message, payload, id=make_id(), created_at=self._now())
            self._db.messages.append(message)
            await self._save_locked()
            result = _snapshot(message)
        self._audit("message_sent", message_id=result.id, sender_id=result.sender_id, receiver_id=result.receiver_id)
        return result

    async def get_message(self, message_id: str) -> Optional[Message]:
        async with self._lock:
            return _snapshot(_first(self._db.messages, lambda m: m.id == message_id))

    async def get_conversation(self, user_a: str, user_b: str) -> List[Message]:
        async with self._lock:
            return _snapshot(conversation_between(self._db.messages, user_a, user_b))

    async def get_conversations(self, user_id: str) -> List[ConversationSummary]:
        async with self._lock:
            return _snapshot(summarize_conversations(self._db.messages, user_id))

    async def mark_message_as_read(self, message_id: str) -> Message:
        async with self._lock:
            message = _first(self._db.messages, lambda m: m.id == message_id)
            if message is None:
                raise NotFoundError("Message not found", {"messageId": message_id})
            if not message.is_read:
                message.is_read = True
                await self._save_locked()
            return _snapshot(message)

    # -- sessions ------------------------------------------------------------

    async def create_session(
        self,
        session_id: str,
        user_id: str,
        data: Optional[Dict[str, Any]],
        expires_at: Union[datetime, str],
    ) -> SessionRecord:
        expires = format_timestamp(expires_at) if isinstance(expires_at, datetime) else expires_at
        session = SessionRecord(id=session_id, user_id=user_id, data=dict(data or {}), expires_at=expires)
        async with self._lock:
            self._db.sessions.append(session)
            await self._save_locked()
            result = _snapshot(session)
        self._audit("session_created", user_id=user_id, expires_at=expires)
        return result

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """Return a live session; an expired one is deleted and reported absent."""
        async with self._lock:
            index = _find_index(self._db.sessions, lambda s: s.id == session_id)
            if index < 0:
                return None
            session = self._db.sessions[index]
            if self._is_expired(session):
                del self._db.sessions[index]
                await self._save_locked()
                logger.info("session_expired user_id=%s", session.user_id)
                return None
            return _snapshot(session)

    async def delete_session(self, session_id: str) -> None:
        async with self._lock:
            index = _find_index(self._db.sessions, lambda s: s.id == session_id)
            if index < 0:
                return
            removed = self._db.sessions.pop(index)
            await self._save_locked()
        self._audit("session_deleted", user_id=removed.user_id)

    async def cleanup_expired_sessions(self) -> int:
        async with self._lock:
            before = len(self._db.sessions)
            self._db.sessions = [s for s in self._db.sessions if not self._is_expired(s)]
            removed = before - len(self._db.sessions)
            if removed:
                await self._save_locked()
        if removed:
            logger.info("sessions_swept removed=%s", removed)
        return removed

    def _is_expired(self, session: SessionRecord) -> bool:
        return timestamp_key(session.expires_at) <= self._clock().timestamp()

    async def _session_sweep_worker(self) -> None:
        while True:
            await asyncio.sleep(self.session_sweep_interval_seconds)
            try:
                await self.cleanup_expired_sessions()
            except StorageError as exc:
                logger.warning("session_sweep_failed error=%s", exc)
            except Exception:
                logger.exception("session_sweep_failed")

    # -- helpers -------------------------------------------------------------

    def _require_user_locked(self, user_id: str) -> None:
        if not _first(self._db.users, lambda u: u.id == user_id):
            raise NotFoundError("User not found", {"userId": user_id})
