"""Protocol for the user-scoped domain record store."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from content_engine.models.domain import (
    ActionItemRecord,
    EntityAssociation,
    Release,
    Stakeholder,
    Workstream,
)


class DomainRecordStore(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[Any]:
        """Unit of work passed as ``db`` to the write methods below."""
        ...

    async def list_stakeholders(self, user_id: int) -> list[Stakeholder]: ...

    async def list_workstreams(self, user_id: int) -> list[Workstream]: ...

    async def list_releases(self, user_id: int) -> list[Release]: ...

    async def find_stakeholder(
        self, user_id: int, name: str | None, email: str | None
    ) -> Stakeholder | None: ...

    async def find_workstream(self, user_id: int, name: str) -> Workstream | None: ...

    async def find_release(
        self, user_id: int, name: str | None, version: str | None
    ) -> Release | None: ...

    async def get_record(self, entity_type: str, user_id: int, entity_id: int) -> Any | None: ...

    async def create_stakeholder(self, record: Stakeholder, db=None) -> Stakeholder: ...

    async def create_workstream(self, record: Workstream, db=None) -> Workstream: ...

    async def create_release(self, record: Release, db=None) -> Release: ...

    async def attach(self, association: EntityAssociation, db=None) -> None: ...

    async def add_action_item(self, item: ActionItemRecord, db=None) -> ActionItemRecord: ...

    async def list_associations(self, content_id: int) -> list[EntityAssociation]: ...
