"""
SQL Item Bank Module

This module provides the SQLAlchemy-backed implementation of the ItemBank
interface, reading the ``items`` table.
"""

from typing import Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from rit_backend.common.db.session import get_session
from rit_backend.common.exceptions import DatabaseError
from rit_backend.common.logger import app_logger
from rit_backend.database.models import ItemRecord
from .model import Item
from .repository import ItemBank

logger = app_logger.getChild("items.sql_repository")


def _to_domain(record: ItemRecord) -> Item:
    return Item(
        id=record.id,
        subject_id=record.subject_id,
        grade_id=record.grade_id,
        text=record.text,
        options=tuple(record.options),
        correct_option_index=record.correct_option_index,
        difficulty=record.difficulty,
    )


class SqlItemBank(ItemBank):
    """
    Item bank reading from the ``items`` table.

    Args:
        factory: Session factory bound to the assessment database
    """

    def __init__(self, factory: async_sessionmaker):
        self._factory = factory

    async def find_in_range(
        self,
        subject_id: str,
        min_difficulty: int,
        max_difficulty: int,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        query = self._base_query(subject_id, excluded, grade_id).where(
            ItemRecord.difficulty.between(min_difficulty, max_difficulty)
        )
        return await self._fetch(query)

    async def find_all(
        self,
        subject_id: str,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        return await self._fetch(self._base_query(subject_id, excluded, grade_id))

    async def get_by_id(self, item_id: str) -> Optional[Item]:
        try:
            async with get_session(self._factory) as session:
                record = await session.get(ItemRecord, item_id)
                return _to_domain(record) if record is not None else None
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to load item {item_id}", e) from e

    async def add(self, item: Item) -> Item:
        """Seed an item. Used by fixtures and import tooling, never by the core."""
        try:
            async with get_session(self._factory) as session:
                session.add(ItemRecord(
                    id=item.id,
                    subject_id=item.subject_id,
                    grade_id=item.grade_id,
                    text=item.text,
                    options=list(item.options),
                    correct_option_index=item.correct_option_index,
                    difficulty=item.difficulty,
                ))
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to add item {item.id}", e) from e
        return item

    def _base_query(self, subject_id: str, excluded: Iterable[str], grade_id: Optional[str]):
        query = select(ItemRecord).where(ItemRecord.subject_id == subject_id)
        excluded = list(excluded)
        if excluded:
            query = query.where(ItemRecord.id.notin_(excluded))
        if grade_id is not None:
            query = query.where(or_(ItemRecord.grade_id.is_(None), ItemRecord.grade_id == grade_id))
        return query

    async def _fetch(self, query) -> List[Item]:
        try:
            async with get_session(self._factory) as session:
                result = await session.execute(query)
                return [_to_domain(record) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Item query failed: {e}")
            raise DatabaseError("item query failed", e) from e
