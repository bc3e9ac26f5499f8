"""Shared fixtures: a small contact-centre day built from validated events."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from cc_reports import (
    CallEvent,
    ChatEvent,
    ClassificationRecord,
    PolarsRecordStore,
    ReportingSettings,
    ReportService,
)


def make_call(
    *,
    entered: datetime,
    queue: str = "m10",
    type: str = "in",
    wait: int = 10,
    duration: int | None = 120,
    user: str | None = "agent-1",
) -> CallEvent:
    answered = type == "in"
    return CallEvent(
        queue_name=queue,
        type=type,
        enter_queue_date=entered,
        answer_date=entered + timedelta(seconds=wait) if answered else None,
        call_duration=duration if answered else None,
        queue_wait_time=wait,
        user_id=user if answered else None,
    )


def make_chat(
    *,
    created: datetime,
    assigned: datetime,
    user: str = "agent-1",
    agent_frt: int = 5,
    type: str = "in",
) -> ChatEvent:
    return ChatEvent(
        type=type,
        created_date=created,
        assign_date=assigned,
        chat_frt=30,
        resolution_time_total=600,
        user_id=user,
        agent_frt=agent_frt,
    )


def make_request(
    *,
    created: datetime,
    paths: list[str],
    queue: str = "m10",
    type: str = "in",
) -> ClassificationRecord:
    return ClassificationRecord(
        type=type,
        queueName=queue,
        createdDate=created,
        classifiers=[{"path": path} for path in paths],
    )


@pytest.fixture
def calls() -> list[CallEvent]:
    """Calls on 2024-03-01 and 2024-03-02.

    2024-03-01 on m10: ten answered calls at 09:0x (eight waited 10s, two 45s,
    agents alternating agent-1/agent-2) and two abandoned at 10:00. One more
    answered call on m10-shikayet. 2024-03-02: four m10 calls at 05:10.
    """
    day = datetime(2024, 3, 1, 9, 0)
    events = [
        make_call(
            entered=day + timedelta(minutes=minute),
            wait=10 if minute < 8 else 45,
            user="agent-1" if minute % 2 == 0 else "agent-2",
        )
        for minute in range(10)
    ]
    events += [
        make_call(entered=datetime(2024, 3, 1, 10, 0), type="abandon", wait=60),
        make_call(entered=datetime(2024, 3, 1, 10, 5), type="abandon", wait=60),
        make_call(
            entered=datetime(2024, 3, 1, 11, 0),
            queue="m10-shikayet",
            wait=5,
            duration=300,
            user="agent-3",
        ),
    ]
    events += [
        make_call(entered=datetime(2024, 3, 2, 5, 10), duration=60) for _ in range(4)
    ]
    return events


@pytest.fixture
def chats() -> list[ChatEvent]:
    """Three chats created 08:50 on 2024-03-01 and assigned at 09:30."""
    created = datetime(2024, 3, 1, 8, 50)
    assigned = datetime(2024, 3, 1, 9, 30)
    return [
        make_chat(created=created, assigned=assigned, user="agent-1"),
        make_chat(created=created, assigned=assigned, user="agent-1"),
        make_chat(created=created, assigned=assigned, user="agent-4", agent_frt=0),
    ]


@pytest.fixture
def requests() -> list[ClassificationRecord]:
    """Classified requests; timestamps are UTC, report dates are Asia/Baku (UTC+4)."""
    utc = timezone.utc
    return [
        make_request(
            created=datetime(2024, 3, 1, 10, 0, tzinfo=utc),
            paths=["Root/Billing/Refund", "Root/Billing"],
        ),
        make_request(
            created=datetime(2024, 3, 1, 12, 0, tzinfo=utc),
            paths=["Root/Billing/Refund"],
            queue="WHATSAPP",
        ),
        make_request(
            created=datetime(2024, 3, 1, 9, 0, tzinfo=utc),
            paths=["Root/Complaint / Service / Delay "],
            queue="m10-shikayet",
        ),
        # 21:30 UTC on Feb 29 is 01:30 on Mar 1 in Baku.
        make_request(
            created=datetime(2024, 2, 29, 21, 30, tzinfo=utc),
            paths=["Root/Delivery"],
        ),
        make_request(
            created=datetime(2024, 3, 1, 11, 0, tzinfo=utc),
            paths=["Root/Ignored"],
            type="out",
        ),
        make_request(
            created=datetime(2024, 3, 2, 8, 0, tzinfo=utc),
            paths=["Root/Delivery/Late"],
        ),
        make_request(created=datetime(2024, 3, 1, 13, 0, tzinfo=utc), paths=[]),
    ]


@pytest.fixture
def store(calls, chats, requests) -> PolarsRecordStore:
    return PolarsRecordStore.from_records(calls=calls, chats=chats, requests=requests)


@pytest.fixture
def settings() -> ReportingSettings:
    return ReportingSettings()


@pytest.fixture
def service(store, settings) -> ReportService:
    return ReportService(store, settings=settings)


class RecordingStore:
    """Store double that records every query and returns canned rows."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, error: Exception | None = None):
        self.rows = rows or []
        self.error = error
        self.queries: list[str] = []

    def aggregate(self, collection, pipeline, *, token=None):
        self.queries.append(collection)
        if self.error is not None:
            raise self.error
        return list(self.rows)


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()
