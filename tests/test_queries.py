"""Tests for search, listing and conversation queries."""

from __future__ import annotations

import pytest

from jobmatch_api.models import Message
from jobmatch_api.queries import JobFilters, conversation_between, summarize_conversations


def _message(message_id: str, sender: str, receiver: str, created_at: str, is_read: bool = False) -> Message:
    return Message(
        id=message_id,
        sender_id=sender,
        receiver_id=receiver,
        content=f"message {message_id}",
        is_read=is_read,
        created_at=created_at,
    )


def test_job_filters_accept_camel_and_snake_keys_and_drop_empty_values() -> None:
    filters = JobFilters.from_mapping({"jobType": "remote", "experience_level": "senior", "search": "", "location": None})

    assert filters == JobFilters(job_type="remote", experience_level="senior")
    assert JobFilters.from_mapping(None) == JobFilters()


@pytest.mark.asyncio
async def test_filters_combine_conjunctively(store, seed) -> None:
    _, company = await seed.employer()
    remote_austin = await seed.posting(company.id, title="Remote Dev", jobType="remote", location="Austin, TX")
    contract_austin = await seed.posting(company.id, title="Contract Dev", jobType="contract", location="Austin, TX")
    await seed.posting(company.id, title="Remote Ops", jobType="remote", location="Berlin")

    matched = await store.get_job_postings({"location": "austin", "jobType": "remote"})
    assert [p.id for p in matched] == [remote_austin.id]

    austin = await store.get_job_postings({"location": "AUSTIN"})
    assert [p.id for p in austin] == [contract_austin.id, remote_austin.id]


@pytest.mark.asyncio
async def test_search_matches_title_or_description_case_insensitively(store, seed) -> None:
    _, company = await seed.employer()
    by_title = await seed.posting(company.id, title="Python Engineer", description="Backend work")
    by_description = await seed.posting(company.id, title="Engineer", description="Mostly PYTHON services")
    await seed.posting(company.id, title="Designer", description="Figma")

    matched = await store.get_job_postings({"search": "python"})

    assert [p.id for p in matched] == [by_description.id, by_title.id]


@pytest.mark.asyncio
async def test_experience_level_filter_is_exact(store, seed) -> None:
    _, company = await seed.employer()
    senior = await seed.posting(company.id, experienceLevel="senior")
    await seed.posting(company.id, experienceLevel="entry")

    matched = await store.get_job_postings(JobFilters(experience_level="senior"))
    assert [p.id for p in matched] == [senior.id]


@pytest.mark.asyncio
async def test_inactive_postings_hidden_from_search_but_listed_for_company(store, seed) -> None:
    _, company = await seed.employer()
    _, other_company = await seed.employer("other@x.com", "Other")
    closed = await seed.posting(company.id, isActive=False)
    open_posting = await seed.posting(company.id)
    foreign = await seed.posting(other_company.id)

    public = await store.get_job_postings()
    owned = await store.get_job_postings_by_company(company.id)

    assert [p.id for p in public] == [foreign.id, open_posting.id]
    assert [p.id for p in owned] == [open_posting.id, closed.id]


@pytest.mark.asyncio
async def test_applications_listed_newest_first(store, seed) -> None:
    _, company = await seed.employer()
    first_job = await seed.posting(company.id)
    second_job = await seed.posting(company.id)
    _, profile = await seed.seeker()

    earlier = await store.create_job_application({"jobId": first_job.id, "applicantId": profile.id})
    seed.clock.advance()
    later = await store.create_job_application({"jobId": second_job.id, "applicantId": profile.id})

    mine = await store.get_job_applications_by_applicant(profile.id)
    assert [a.id for a in mine] == [later.id, earlier.id]
    assert [a.id for a in await store.get_job_applications_by_job(first_job.id)] == [earlier.id]


def test_conversation_summary_keeps_latest_message_and_counts_unread() -> None:
    messages = [
        _message("m1", "b", "a", "2026-03-01T09:00:01.000Z"),
        _message("m2", "a", "b", "2026-03-01T09:00:02.000Z"),
        _message("m3", "c", "a", "2026-03-01T09:00:03.000Z", is_read=True),
        _message("m4", "b", "a", "2026-03-01T09:00:00.500Z"),
        _message("m5", "b", "c", "2026-03-01T09:00:04.000Z"),
    ]

    summaries = summarize_conversations(messages, "a")

    assert [(s.user_id, s.last_message.id, s.unread_count) for s in summaries] == [
        ("c", "m3", 0),
        ("b", "m2", 2),
    ]


def test_conversation_summary_keeps_first_message_on_timestamp_tie() -> None:
    messages = [
        _message("m1", "a", "b", "2026-03-01T09:00:01.000Z"),
        _message("m2", "b", "a", "2026-03-01T09:00:01.000Z"),
    ]

    (summary,) = summarize_conversations(messages, "a")

    assert summary.last_message.id == "m1"
    assert summary.unread_count == 1


def test_conversation_between_is_symmetric_and_oldest_first() -> None:
    messages = [
        _message("m2", "b", "a", "2026-03-01T09:00:02.000Z"),
        _message("m1", "a", "b", "2026-03-01T09:00:01.000Z"),
        _message("m3", "a", "c", "2026-03-01T09:00:03.000Z"),
    ]

    assert [m.id for m in conversation_between(messages, "a", "b")] == ["m1", "m2"]
    assert [m.id for m in conversation_between(messages, "b", "a")] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_store_conversations_reflect_reads(store, clock) -> None:
    alice = await store.upsert_user({"email": "alice@x.com"})
    bob = await store.upsert_user({"email": "bob@x.com"})

    first = await store.create_message({"senderId": bob.id, "receiverId": alice.id, "content": "hello"})
    clock.advance()
    second = await store.create_message({"senderId": alice.id, "receiverId": bob.id, "content": "hi back"})

    (for_alice,) = await store.get_conversations(alice.id)
    assert for_alice.user_id == bob.id
    assert for_alice.last_message.id == second.id
    assert for_alice.unread_count == 1

    await store.mark_message_as_read(first.id)
    (for_alice,) = await store.get_conversations(alice.id)
    assert for_alice.unread_count == 0
    assert for_alice.to_dict()["lastMessage"]["content"] == "hi back"

    thread = await store.get_conversation(alice.id, bob.id)
    assert [m.id for m in thread] == [first.id, second.id]


@pytest.mark.asyncio
async def test_search_users_excludes_caller_and_hides_password_hash(store) -> None:
    caller = await store.upsert_user({"email": "sam@acme.test", "firstName": "Sam"})
    await store.upsert_user({"email": "samantha@x.com", "passwordHash": "secret-hash", "displayName": "Sammy"})
    await store.upsert_user({"email": "zed@x.com", "lastName": "Samson"})
    await store.upsert_user({"email": "nobody@x.com"})

    results = await store.search_users(caller.id, "SAM")

    assert sorted(item["email"] for item in results) == ["samantha@x.com", "zed@x.com"]
    assert all("passwordHash" not in item for item in results)
    assert await store.search_users(caller.id, "") == []
