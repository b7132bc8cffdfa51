from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from almond.models.category import Category


class CategoryRepository:
    """
    Data access for the category tree. Nodes reference their parent by id
    only; every traversal here is an explicit, non-recursive query.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, category_id: str) -> Category | None:
        return await self.session.get(Category, category_id)

    async def get_for_update(self, category_id: str) -> Category | None:
        """
        Loads a category with a row lock (SELECT ... FOR UPDATE where the
        backend supports it) and fresh column values.
        """
        stmt = (
            select(Category)
            .where(Category.id == category_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_slug(self, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_full_slug(self, full_slug: str) -> Category | None:
        stmt = select(Category).where(Category.full_slug == full_slug)
        return (await self.session.scalars(stmt)).one_or_none()

    async def list_all(self) -> Sequence[Category]:
        stmt = select(Category).order_by(Category.legacy_id)
        return (await self.session.scalars(stmt)).all()

    async def list_roots(self) -> Sequence[Category]:
        stmt = select(Category).where(Category.parent_id.is_(None)).order_by(Category.legacy_id)
        return (await self.session.scalars(stmt)).all()

    async def list_children_of(self, parent_ids: Sequence[str]) -> Sequence[Category]:
        """Direct children of every id in `parent_ids` (one tree level)."""
        if not parent_ids:
            return []
        stmt = select(Category).where(Category.parent_id.in_(parent_ids)).order_by(Category.legacy_id)
        return (await self.session.scalars(stmt)).all()

    async def get_next_legacy_id(self) -> int:
        """
        Retrieves the next legacy id by finding the maximum existing one and
        incrementing it. The unique constraint on the column backs this up.
        """
        max_id = await self.session.scalar(select(func.max(Category.legacy_id)))
        return (max_id or 0) + 1

    async def create(self, create_data: dict[str, Any]) -> Category:
        category = Category(**create_data)
        category.legacy_id = await self.get_next_legacy_id()
        self.session.add(category)
        await self.session.flush()
        return category

    async def delete(self, category_id: str) -> int:
        """Deletes one node; the storage layer cascades to its subtree."""
        result = await self.session.execute(delete(Category).where(Category.id == category_id))
        return result.rowcount
