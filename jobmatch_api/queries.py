"""Read-only views over store collections.

Everything here is a pure function of the rows passed in. The store calls
these while holding its lock and copies the results before returning them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import ConversationSummary, JobApplication, JobPosting, Message, User, timestamp_key


@dataclass
class JobFilters:
    search: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[str] = None
    experience_level: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "JobFilters":
        data = data or {}

        def pick(camel: str, snake: str) -> Optional[str]:
            value = data.get(camel, data.get(snake))
            return str(value) if value not in (None, "") else None

        return cls(
            search=pick("search", "search"),
            location=pick("location", "location"),
            job_type=pick("jobType", "job_type"),
            experience_level=pick("experienceLevel", "experience_level"),
        )


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()  # type: ignore[union-attr]


def filter_job_postings(postings: Iterable[JobPosting], filters: Optional[JobFilters] = None) -> List[JobPosting]:
    """Active postings matching every supplied filter, newest first."""
    filters = filters or JobFilters()
    selected = [posting for posting in postings if posting.is_active]

    if filters.search:
        needle = filters.search.lower()
        selected = [p for p in selected if _contains(p.title, needle) or _contains(p.description, needle)]
    if filters.location:
        needle = filters.location.lower()
        selected = [p for p in selected if _contains(p.location, needle)]
    if filters.job_type:
        selected = [p for p in selected if p.job_type == filters.job_type]
    if filters.experience_level:
        selected = [p for p in selected if p.experience_level == filters.experience_level]

    return sorted(selected, key=lambda p: timestamp_key(p.created_at), reverse=True)


def postings_for_company(postings: Iterable[JobPosting], company_id: str) -> List[JobPosting]:
    """All postings of one company, inactive included, newest first."""
    owned = [posting for posting in postings if posting.company_id == company_id]
    return sorted(owned, key=lambda p: timestamp_key(p.created_at), reverse=True)


def applications_for_applicant(applications: Iterable[JobApplication], applicant_id: str) -> List[JobApplication]:
    matched = [item for item in applications if item.applicant_id == applicant_id]
    return sorted(matched, key=lambda a: timestamp_key(a.applied_at), reverse=True)


def applications_for_job(applications: Iterable[JobApplication], job_id: str) -> List[JobApplication]:
    matched = [item for item in applications if item.job_id == job_id]
    return sorted(matched, key=lambda a: timestamp_key(a.applied_at), reverse=True)


def summarize_conversations(messages: Iterable[Message], user_id: str) -> List[ConversationSummary]:
    """One summary per counterpart of ``user_id``.

    Single pass over the messages: each counterpart keeps its most recent
    message (replaced only by a strictly newer one) and a count of unread
    messages addressed to ``user_id``. Summaries are ordered by the time of
    their last message, newest first.
    """
    summaries: Dict[str, ConversationSummary] = {}
    for message in messages:
        if message.sender_id == user_id:
            other_id = message.receiver_id
        elif message.receiver_id == user_id:
            other_id = message.sender_id
        else:
            continue

        summary = summaries.get(other_id)
        if summary is None:
            summary = ConversationSummary(user_id=other_id, last_message=message)
            summaries[other_id] = summary
        elif timestamp_key(message.created_at) > timestamp_key(summary.last_message.created_at):
            summary.last_message = message

        if message.receiver_id == user_id and not message.is_read:
            summary.unread_count += 1

    return sorted(
        summaries.values(),
        key=lambda item: timestamp_key(item.last_message.created_at),
        reverse=True,
    )


def conversation_between(messages: Iterable[Message], user_a: str, user_b: str) -> List[Message]:
    """Messages exchanged by two users in either direction, oldest first."""
    thread = [
        message
        for message in messages
        if (message.sender_id == user_a and message.receiver_id == user_b)
        or (message.sender_id == user_b and message.receiver_id == user_a)
    ]
    return sorted(thread, key=lambda m: timestamp_key(m.created_at))


def search_users(users: Iterable[User], current_user_id: str, term: str) -> List[Dict[str, Any]]:
    """Public projections of users whose name or email contains ``term``."""
    needle = (term or "").lower()
    if not needle:
        return []
    return [
        user.public_view()
        for user in users
        if user.id != current_user_id
        and (
            _contains(user.email, needle)
            or _contains(user.display_name, needle)
            or _contains(user.first_name, needle)
            or _contains(user.last_name, needle)
        )
    ]
