"""TreeStore over a SQL table of flattened leaves."""

import asyncio
import json
import logging
from typing import Any, Iterator, Mapping

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from errors import TransientIOError, ValidationError
from models import TreeNode
from .base import SnapshotCallback, SubscriberRegistry, Subscription, deliver
from .paths import check_disjoint, split_path, validate_key
from .tree import normalize, set_at

logger = logging.getLogger(__name__)


def _flatten(parts: list[str], value: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _flatten(parts + [validate_key(str(key))], child)
    elif value is not None:
        if not parts:
            raise ValidationError("Only objects can be written at the root")
        yield "/".join(parts), value


def _assemble(parts: list[str], rows: list[TreeNode]) -> Any:
    base = "/".join(parts)
    tree: Any = None
    for row in rows:
        value = json.loads(row.value)
        if row.path == base:
            return value
        relative = row.path[len(base) + 1 :] if base else row.path
        tree = set_at(tree, relative.split("/"), value)
    return tree


class SqlTreeStore:
    """
    Keeps the trip tree in the ``tree_node`` table, one row per leaf.

    Each batch runs in a single transaction. Subscribers living in this
    process are notified after commit; other processes must subscribe
    through their own store instance.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._subscribers = SubscriberRegistry()
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "SqlTreeStore":
        return cls(create_async_engine(database_url))

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all, tables=[TreeNode.__table__])

    async def close(self) -> None:
        await self.engine.dispose()

    async def _rows_under(self, session: AsyncSession, parts: list[str]) -> list[TreeNode]:
        stmt = select(TreeNode)
        if parts:
            path = "/".join(parts)
            # Every descendant path sorts between "<path>/" and "<path>0"
            stmt = stmt.where(
                or_(
                    col(TreeNode.path) == path,
                    and_(col(TreeNode.path) >= path + "/", col(TreeNode.path) < path + "0"),
                )
            )
        result = await session.exec(stmt.order_by(col(TreeNode.path)))
        return list(result.all())

    async def _read_parts(self, parts: list[str]) -> Any:
        try:
            async with AsyncSession(self.engine) as session:
                rows = await self._rows_under(session, parts)
        except SQLAlchemyError as e:
            raise TransientIOError(f"Failed to read '{'/'.join(parts)}': {e}") from e
        return _assemble(parts, rows)

    async def read(self, path: str) -> Any:
        return await self._read_parts(split_path(path))

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Subscription:
        subscription = self._subscribers.add(path, on_snapshot)
        try:
            value = await self.read(path)
        except TransientIOError:
            subscription.unsubscribe()
            raise
        deliver(path, on_snapshot, value)
        return subscription

    async def _write_one(self, session: AsyncSession, parts: list[str], value: Any) -> None:
        for row in await self._rows_under(session, parts):
            await session.delete(row)

        # A scalar sitting on an ancestor path is replaced by the new object
        ancestors = ["/".join(parts[:i]) for i in range(1, len(parts))]
        if ancestors:
            result = await session.exec(select(TreeNode).where(col(TreeNode.path).in_(ancestors)))
            for row in result.all():
                await session.delete(row)

        await session.flush()
        for leaf_path, leaf in _flatten(parts, normalize(value)):
            session.add(TreeNode(path=leaf_path, value=json.dumps(leaf)))

    async def write_batch(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        written = check_disjoint(updates.keys())

        async with self._write_lock:
            try:
                async with AsyncSession(self.engine) as session:
                    for parts, value in zip(written, updates.values()):
                        await self._write_one(session, parts, value)
                    await session.commit()
            except SQLAlchemyError as e:
                logger.error(f"Batch write of {len(updates)} paths failed: {e}")
                raise TransientIOError(f"Failed to write batch: {e}") from e

        logger.debug(f"Committed batch of {len(updates)} paths")
        await self._subscribers.notify(written, self._read_parts)
