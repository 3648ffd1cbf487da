"""Todo store — the persistence capability the services talk to.

Learn: Services never see an AsyncSession. They get a TodoStore, a narrow
interface of owner-filtered queries and writes, so tests can swap in a
fake and production runs the SQLAlchemy implementation below.

Every write that targets an existing row is ONE statement whose WHERE
clause carries both the id and the owner:

    UPDATE todos SET ... WHERE id = :id AND user_id = :owner RETURNING *

There is no "load, compare owner in Python, then save" step, so there is
nothing to race against. Zero rows back means "not yours or not there"
and the caller cannot tell which.
"""

from typing import Any, Optional, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from todogate.db.engine import build_session_factory
from todogate.db.models import Todo, User


class TodoStore(Protocol):
    """Owner-scoped CRUD over the todos table (plus the admin user count)."""

    async def select_todos(self, owner_id: str) -> list[Todo]: ...

    async def select_todo(self, todo_id: int, owner_id: str) -> Optional[Todo]: ...

    async def insert_todo(self, owner_id: str, values: dict[str, Any]) -> Todo: ...

    async def update_todo(
        self, todo_id: int, owner_id: str, values: dict[str, Any]
    ) -> Optional[Todo]: ...

    async def delete_todo(self, todo_id: int, owner_id: str) -> bool: ...

    async def count_users(self) -> int: ...


class SqlStore:
    """TodoStore backed by an async SQLAlchemy engine.

    Each method opens its own short transaction (session.begin()), so a
    call either commits completely or not at all.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.sessions: async_sessionmaker[AsyncSession] = build_session_factory(engine)

    async def select_todos(self, owner_id: str) -> list[Todo]:
        async with self.sessions() as db:
            result = await db.execute(
                select(Todo).where(Todo.user_id == owner_id).order_by(Todo.id)
            )
            return list(result.scalars().all())

    async def select_todo(self, todo_id: int, owner_id: str) -> Optional[Todo]:
        async with self.sessions() as db:
            result = await db.execute(
                select(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id)
            )
            return result.scalars().first()

    async def insert_todo(self, owner_id: str, values: dict[str, Any]) -> Todo:
        # owner comes from the caller's identity, never from values
        todo = Todo(**{k: v for k, v in values.items() if k != "user_id"}, user_id=owner_id)
        async with self.sessions.begin() as db:
            db.add(todo)
            await db.flush()  # get auto-generated id
        return todo

    async def update_todo(
        self, todo_id: int, owner_id: str, values: dict[str, Any]
    ) -> Optional[Todo]:
        values = {k: v for k, v in values.items() if k not in ("id", "user_id")}
        stmt = (
            update(Todo)
            .where(Todo.id == todo_id, Todo.user_id == owner_id)
            .values(**values)
            .returning(Todo)
            .execution_options(synchronize_session=False)
        )
        async with self.sessions.begin() as db:
            result = await db.execute(stmt)
            return result.scalars().first()

    async def delete_todo(self, todo_id: int, owner_id: str) -> bool:
        stmt = (
            delete(Todo)
            .where(Todo.id == todo_id, Todo.user_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        async with self.sessions.begin() as db:
            result = await db.execute(stmt)
            return bool(result.rowcount)

    async def count_users(self) -> int:
        async with self.sessions() as db:
            result = await db.execute(select(func.count()).select_from(User))
            return int(result.scalar_one())

    async def aclose(self) -> None:
        await self.engine.dispose()
