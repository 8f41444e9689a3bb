"""In-memory CRM collaborators.

Entity adapters and CRM services backed by plain dictionaries, for development, tests and
the example application. Production deployments implement the protocols in
``litestar_automation.core.protocols`` over their own data stores.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from litestar_automation.core.types import Snapshot

__all__ = [
    "InMemoryCrmServices",
    "InMemoryEntityAdapter",
    "InMemoryTaggableEntityAdapter",
    "RecordedActivity",
    "RecordedEmail",
    "RecordedTask",
]


class InMemoryEntityAdapter:
    """Entity adapter over a dictionary of records keyed by id.

    Attributes:
        entity_type: The entity kind served.
        records: Map of record ids to field values.
        owner_field: Field holding the owner id, used to count owned records.
    """

    def __init__(
        self,
        entity_type: str,
        records: Mapping[str, Snapshot] | None = None,
        owner_field: str = "ownerId",
    ) -> None:
        self.entity_type = entity_type
        self.records: dict[str, Snapshot] = {key: dict(value) for key, value in (records or {}).items()}
        self.owner_field = owner_field

    async def get_snapshot(self, entity_id: str) -> Snapshot | None:
        record = self.records.get(entity_id)
        return dict(record) if record is not None else None

    async def update_field(self, entity_id: str, field: str, value: Any) -> None:
        if entity_id not in self.records:
            msg = f"{self.entity_type} record '{entity_id}' not found"
            raise LookupError(msg)
        self.records[entity_id][field] = value

    async def count_owned_records(self, user_id: str) -> int:
        return sum(1 for record in self.records.values() if record.get(self.owner_field) == user_id)


class InMemoryTaggableEntityAdapter(InMemoryEntityAdapter):
    """In-memory adapter for entity kinds that carry tags.

    Attributes:
        tags: Map of record ids to the ids of their attached tags.
    """

    def __init__(
        self,
        entity_type: str,
        records: Mapping[str, Snapshot] | None = None,
        owner_field: str = "ownerId",
    ) -> None:
        super().__init__(entity_type, records, owner_field)
        self.tags: defaultdict[str, set[str]] = defaultdict(set)

    async def connect_tag(self, entity_id: str, tag_id: str) -> None:
        self.tags[entity_id].add(tag_id)

    async def disconnect_tag(self, entity_id: str, tag_id: str) -> None:
        self.tags[entity_id].discard(tag_id)


@dataclass
class RecordedTask:
    """A task created through InMemoryCrmServices."""

    id: str
    title: str
    description: str | None
    priority: str
    assignee_id: str
    due_date: datetime | None
    related_type: str
    related_id: str


@dataclass
class RecordedActivity:
    """An activity created through InMemoryCrmServices."""

    id: str
    activity_type: str
    title: str
    description: str | None
    user_id: str
    related_type: str
    related_id: str


@dataclass
class RecordedEmail:
    """An outbound email log entry created through InMemoryCrmServices."""

    id: str
    subject: str
    body: str
    from_email: str
    to_emails: list[str]
    related_type: str
    related_id: str


@dataclass
class InMemoryCrmServices:
    """CRM services that record every write in lists.

    Attributes:
        tasks: Created tasks, oldest first.
        activities: Created activities, oldest first.
        emails: Outbound email log entries, oldest first.
        tag_ids: Map of tag names to tag ids.
        teams: Map of team ids to member user ids.
    """

    tasks: list[RecordedTask] = field(default_factory=list)
    activities: list[RecordedActivity] = field(default_factory=list)
    emails: list[RecordedEmail] = field(default_factory=list)
    tag_ids: dict[str, str] = field(default_factory=dict)
    teams: dict[str, list[str]] = field(default_factory=dict)

    def add_team(self, team_id: str, members: Iterable[str]) -> None:
        """Register a team and its members."""
        self.teams[team_id] = list(members)

    async def create_task(
        self,
        *,
        title: str,
        description: str | None,
        priority: str,
        assignee_id: str,
        due_date: datetime | None,
        related_type: str,
        related_id: str,
    ) -> str:
        task = RecordedTask(
            id=str(uuid4()),
            title=title,
            description=description,
            priority=priority,
            assignee_id=assignee_id,
            due_date=due_date,
            related_type=related_type,
            related_id=related_id,
        )
        self.tasks.append(task)
        return task.id

    async def create_activity(
        self,
        *,
        activity_type: str,
        title: str,
        description: str | None,
        user_id: str,
        related_type: str,
        related_id: str,
    ) -> str:
        activity = RecordedActivity(
            id=str(uuid4()),
            activity_type=activity_type,
            title=title,
            description=description,
            user_id=user_id,
            related_type=related_type,
            related_id=related_id,
        )
        self.activities.append(activity)
        return activity.id

    async def log_outbound_email(
        self,
        *,
        subject: str,
        body: str,
        from_email: str,
        to_emails: Sequence[str],
        related_type: str,
        related_id: str,
    ) -> str:
        email = RecordedEmail(
            id=str(uuid4()),
            subject=subject,
            body=body,
            from_email=from_email,
            to_emails=list(to_emails),
            related_type=related_type,
            related_id=related_id,
        )
        self.emails.append(email)
        return email.id

    async def upsert_tag(self, name: str) -> str:
        return self.tag_ids.setdefault(name, str(uuid4()))

    async def find_tag(self, name: str) -> str | None:
        return self.tag_ids.get(name)

    async def resolve_team_members(self, team_id: str) -> list[str]:
        return list(self.teams.get(team_id, []))
