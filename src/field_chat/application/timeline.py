"""Timeline assembly: calendar-day buckets and sender adjacency.

Everything here is a pure function of the message list and ``now``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo

from field_chat.domain.entities.message import Message

GROUP_WINDOW = timedelta(minutes=5)


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    message: Message
    is_grouped_with_previous: bool


@dataclass(frozen=True, slots=True)
class TimelineGroup:
    date_label: str
    entries: list[TimelineEntry] = field(default_factory=list)


def date_label(moment: datetime, now: datetime, tz: tzinfo = timezone.utc) -> str:
    day = moment.astimezone(tz).date()
    today = now.astimezone(tz).date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%B} {day.day}, {day.year}"


def group_by_date(
    messages: list[Message],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> dict[str, list[Message]]:
    groups: dict[str, list[Message]] = {}
    for message in messages:
        label = date_label(message.created_at, now, tz)
        groups.setdefault(label, []).append(message)
    return groups


def should_group_with_previous(
    prev: Message | None,
    curr: Message,
    window: timedelta = GROUP_WINDOW,
) -> bool:
    if prev is None:
        return False
    if prev.sender_key != curr.sender_key:
        return False
    gap = curr.created_at - prev.created_at
    return timedelta(0) <= gap < window


def assemble(
    messages: list[Message],
    now: datetime,
    tz: tzinfo = timezone.utc,
    window: timedelta = GROUP_WINDOW,
) -> list[TimelineGroup]:
    """Bucket *messages* by day and flag sender runs inside each bucket."""
    groups: list[TimelineGroup] = []
    for label, bucket in group_by_date(messages, now, tz).items():
        entries: list[TimelineEntry] = []
        prev: Message | None = None
        for message in bucket:
            entries.append(
                TimelineEntry(
                    message=message,
                    is_grouped_with_previous=should_group_with_previous(prev, message, window),
                )
            )
            prev = message
        groups.append(TimelineGroup(date_label=label, entries=entries))
    return groups
