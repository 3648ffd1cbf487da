"""Todo service — owner-scoped CRUD over the caller's todos.

Learn: Every method takes the caller's Identity and passes identity.user_id
down as the owner filter. There is no code path that touches a todo
without it, so one user can never read or change another user's rows.

Rules enforced here:
1. Store unavailable → DatabaseUnavailable before any store call
2. Start/end instants are composed from date + time fields
3. update/patch/delete are single conditional writes (id AND owner);
   zero rows → NotFoundOrUnauthorized, whichever reason it was. An id
   outside the column range can match nothing, so it gets the same answer
   without a store call
4. Store faults are logged and surfaced as UnexpectedFault

Not enforced (on purpose): start_at <= end_at, and overlapping todos.
"""

from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from typing import Any, Iterator, Optional

import structlog

from todogate.auth.identity import Identity
from todogate.db.models import MAX_TODO_ID, Todo
from todogate.db.store import TodoStore
from todogate.errors import (
    DatabaseUnavailable,
    GateError,
    NotFoundOrUnauthorized,
    UnexpectedFault,
    ValidationFailed,
)
from todogate.schemas.todo import TodoForm, TodoPatch

logger = structlog.get_logger()


def compose_instant(day: date, at: time) -> datetime:
    """Combine a calendar date and a wall-clock time into one UTC instant.

    Learn: "2024-03-01" + "09:00" → 2024-03-01T09:00Z. A time that carries
    its own offset ("09:00+02:00") is rejected rather than guessed at —
    the date half has no offset, so the combination is ambiguous.
    """
    if at.tzinfo is not None:
        raise ValidationFailed(
            "Times must not carry a UTC offset",
            detail={"time": at.isoformat()},
        )
    return datetime.combine(day, at, tzinfo=timezone.utc)


class TodoService:
    """Business logic for owner-scoped todo CRUD."""

    def __init__(self, store: Optional[TodoStore]):
        self.store = store

    # ─── Read ────────────────────────────────────────────

    async def list(self, identity: Identity) -> list[Todo]:
        """All of the caller's todos, in insertion order."""
        store = self._require_store()
        with self._store_call("list", identity):
            return await store.select_todos(identity.user_id)

    async def get(self, identity: Identity, todo_id: int) -> Todo:
        store = self._require_store()
        self._check_id(todo_id)
        with self._store_call("get", identity, todo_id=todo_id):
            todo = await store.select_todo(todo_id, identity.user_id)
        if todo is None:
            raise NotFoundOrUnauthorized()
        return todo

    # ─── Create ──────────────────────────────────────────

    async def create(self, identity: Identity, form: TodoForm) -> Todo:
        """Create a todo owned by the caller."""
        store = self._require_store()
        values = self._form_values(form)
        with self._store_call("create", identity):
            todo = await store.insert_todo(identity.user_id, values)
        logger.info("todos.created", user_id=identity.user_id, todo_id=todo.id)
        return todo

    # ─── Update ──────────────────────────────────────────

    async def update(self, identity: Identity, todo_id: int, form: TodoForm) -> Todo:
        """Full replace. Every field in the form is written."""
        store = self._require_store()
        self._check_id(todo_id)
        values = self._form_values(form)
        return await self._conditional_update(store, identity, todo_id, values)

    async def patch(self, identity: Identity, todo_id: int, patch: TodoPatch) -> Todo:
        """Partial update. Only the fields present in the request are written.

        Learn: A new start instant is only composed when both startDate and
        startTime are present (the schema rejects half a pair), so start_at
        and end_at are each written whole, inside the same UPDATE as
        everything else in the patch.
        """
        store = self._require_store()
        self._check_id(todo_id)
        supplied = patch.model_dump(exclude_unset=True)
        if not supplied:
            raise ValidationFailed("No fields to update")

        values: dict[str, Any] = {}
        for field in ("text", "description", "status"):
            if field in supplied:
                if supplied[field] is None and field != "description":
                    raise ValidationFailed(f"{field} cannot be null")
                values[field] = supplied[field]
        if patch.start_date is not None and patch.start_time is not None:
            values["start_at"] = compose_instant(patch.start_date, patch.start_time)
        if patch.end_date is not None and patch.end_time is not None:
            values["end_at"] = compose_instant(patch.end_date, patch.end_time)

        if not values:
            raise ValidationFailed("No fields to update")
        return await self._conditional_update(store, identity, todo_id, values)

    # ─── Delete ──────────────────────────────────────────

    async def delete(self, identity: Identity, todo_id: int) -> None:
        store = self._require_store()
        self._check_id(todo_id)
        with self._store_call("delete", identity, todo_id=todo_id):
            deleted = await store.delete_todo(todo_id, identity.user_id)
        if not deleted:
            raise NotFoundOrUnauthorized()
        logger.info("todos.deleted", user_id=identity.user_id, todo_id=todo_id)

    # ─── Helpers ─────────────────────────────────────────

    def _require_store(self) -> TodoStore:
        if self.store is None:
            raise DatabaseUnavailable()
        return self.store

    @staticmethod
    def _check_id(todo_id: int) -> None:
        if not 1 <= todo_id <= MAX_TODO_ID:
            raise NotFoundOrUnauthorized()

    async def _conditional_update(
        self,
        store: TodoStore,
        identity: Identity,
        todo_id: int,
        values: dict[str, Any],
    ) -> Todo:
        with self._store_call("update", identity, todo_id=todo_id):
            todo = await store.update_todo(todo_id, identity.user_id, values)
        if todo is None:
            raise NotFoundOrUnauthorized()
        return todo

    @staticmethod
    def _form_values(form: TodoForm) -> dict[str, Any]:
        return {
            "text": form.text,
            "description": form.description,
            "status": form.status,
            "start_at": compose_instant(form.start_date, form.start_time),
            "end_at": compose_instant(form.end_date, form.end_time),
        }

    @contextmanager
    def _store_call(self, op: str, identity: Identity, **context: Any) -> Iterator[None]:
        """Turn any store fault into a logged UnexpectedFault."""
        try:
            yield
        except GateError:
            raise
        except Exception:
            logger.exception(
                "todos.store_error", op=op, user_id=identity.user_id, **context
            )
            raise UnexpectedFault()
