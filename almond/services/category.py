from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from almond.core.i18n import FALLBACK_LOCALE
from almond.core.logging import get_logger
from almond.core.text import slugify
from almond.db.utils import apply_dict_updates
from almond.exceptions.http import ConflictError, NotFoundError, ValidationError
from almond.models.category import Category
from almond.repositories import CategoryRepository
from almond.schemas import CategoryResponse, CategoryTreeNode, Translation

logger = get_logger(__name__)

PARENT_FIELDS = frozenset({"parent_category_id", "parent_id"})


def localize(category: Category, locale: str) -> str:
    """
    Display name of `category` for `locale`: the locale's entry, else the
    English one, else the first translation, else "".
    """
    translations = category.translations or []
    by_lang = {t.get("lang"): t.get("name") for t in translations if isinstance(t, dict)}
    for lang in (locale, FALLBACK_LOCALE):
        if by_lang.get(lang):
            return by_lang[lang]
    for name in by_lang.values():
        if name:
            return name
    return ""


def to_response(category: Category, locale: str) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        legacy_id=category.legacy_id,
        slug=category.slug,
        full_slug=category.full_slug,
        parent_category_id=category.parent_id,
        name=localize(category, locale),
    )


def normalize_translations(translations: Iterable[Translation | dict[str, Any]] | None) -> list[dict[str, str]]:
    """Validates a translation list and returns it as stored: [{lang, name}, ...]."""
    if not translations:
        raise ValidationError("translations_required")

    normalized: list[dict[str, str]] = []
    seen: set[str] = set()
    for item in translations:
        data = item.model_dump() if isinstance(item, Translation) else dict(item)
        lang = str(data.get("lang") or "").strip().lower()
        name = str(data.get("name") or "").strip()
        if lang in seen:
            raise ValidationError("duplicate_translation_language")
        seen.add(lang)
        normalized.append({"lang": lang, "name": name})

    if not any(t["lang"] == "en" and t["name"] for t in normalized):
        raise ValidationError("english_translation_required")
    return normalized


def english_name(translations: list[dict[str, str]]) -> str:
    return next(t["name"] for t in translations if t["lang"] == "en")


def join_slug(parent: Category | None, slug: str) -> str:
    return f"{parent.full_slug}/{slug}" if parent is not None else slug


class CategoryService:
    def __init__(self, session: AsyncSession, category_repo: CategoryRepository):
        self._session = session
        self._category_repo = category_repo

    # --- 1. CREATE ---

    async def create(
        self,
        translations: Iterable[Translation | dict[str, Any]] | None,
        parent_id: str | None = None,
        slug: str | None = None,
    ) -> Category:
        normalized = normalize_translations(translations)
        new_slug = slugify(slug or english_name(normalized))
        if not new_slug:
            raise ValidationError("invalid_slug")

        parent = None
        if parent_id:
            parent = await self._category_repo.get_by_id(parent_id)
            if parent is None:
                raise NotFoundError("parent_category_not_found")

        full_slug = join_slug(parent, new_slug)
        if await self._category_repo.get_by_slug(new_slug) or await self._category_repo.get_by_full_slug(full_slug):
            raise ConflictError("category_slug_taken")

        try:
            category = await self._category_repo.create(
                {
                    "slug": new_slug,
                    "full_slug": full_slug,
                    "translations": normalized,
                    "parent_id": parent.id if parent else None,
                }
            )
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise ConflictError("category_slug_taken") from exc

        logger.info("Created category %s (legacy id %d)", category.full_slug, category.legacy_id)
        return category

    # --- 2. READ ---

    async def get(self, category_id: str) -> Category:
        category = await self._category_repo.get_by_id(category_id)
        if category is None:
            raise NotFoundError("category_not_found")
        return category

    async def list_all(self) -> Sequence[Category]:
        return await self._category_repo.list_all()

    async def resolve_full_path(self, category_id: str) -> list[Category]:
        """Ancestors of a node, root first, ending with the node itself."""
        node = await self.get(category_id)
        path = [node]
        seen = {node.id}
        while node.parent_id and node.parent_id not in seen:
            parent = await self._category_repo.get_by_id(node.parent_id)
            if parent is None:
                break
            path.append(parent)
            seen.add(parent.id)
            node = parent
        path.reverse()
        return path

    async def list_tree(self, locale: str, root_id: str | None = None) -> list[CategoryTreeNode]:
        """
        Nested view of the hierarchy, built breadth-first with one query per
        tree level. With `root_id` only that node's subtree is returned.
        """
        roots = [await self.get(root_id)] if root_id else list(await self._category_repo.list_roots())

        nodes: dict[str, CategoryTreeNode] = {}
        top: list[CategoryTreeNode] = []
        for root in roots:
            nodes[root.id] = CategoryTreeNode(**to_response(root, locale).model_dump())
            top.append(nodes[root.id])

        level = [root.id for root in roots]
        while level:
            children = await self._category_repo.list_children_of(level)
            level = []
            for child in children:
                if child.id in nodes:
                    continue
                node = CategoryTreeNode(**to_response(child, locale).model_dump())
                nodes[child.id] = node
                nodes[child.parent_id].children.append(node)
                level.append(child.id)
        return top

    # --- 3. UPDATE ---

    async def update(self, category_id: str, changes: dict[str, Any]) -> Category:
        """
        Applies a partial update of translations and/or slug. Moving a node
        goes through `reparent`; a parent field in `changes` is refused.
        """
        if PARENT_FIELDS & changes.keys():
            raise ValidationError("parent_update_not_allowed")

        update_data = {k: v for k, v in changes.items() if k in ("translations", "slug") and v is not None}
        if not update_data:
            raise ValidationError("no_fields_to_update")

        if "translations" in update_data:
            update_data["translations"] = normalize_translations(update_data["translations"])
        if "slug" in update_data:
            update_data["slug"] = slugify(update_data["slug"])
            if not update_data["slug"]:
                raise ValidationError("invalid_slug")

        category = await self._category_repo.get_for_update(category_id)
        if category is None:
            raise NotFoundError("category_not_found")

        slug_changed = "slug" in update_data and update_data["slug"] != category.slug
        if slug_changed:
            holder = await self._category_repo.get_by_slug(update_data["slug"])
            if holder is not None and holder.id != category.id:
                raise ConflictError("category_slug_taken")

        apply_dict_updates(category, update_data, excluded_attrs={"id", "legacy_id", "parent_id", "full_slug"})
        if slug_changed:
            parent = await self._category_repo.get_by_id(category.parent_id) if category.parent_id else None
            category.full_slug = join_slug(parent, category.slug)
            await self._rewrite_descendant_paths(category)

        await self._commit_write()
        logger.info("Updated category %s", category.full_slug)
        return category

    async def reparent(self, category_id: str, new_parent_id: str | None) -> Category:
        """
        Moves a node under `new_parent_id` (or to the top level when None)
        and rewrites the full slug of the node and its whole subtree.
        """
        if new_parent_id == category_id:
            raise ValidationError("category_own_parent")

        category = await self._category_repo.get_for_update(category_id)
        if category is None:
            raise NotFoundError("category_not_found")

        parent = None
        if new_parent_id:
            parent = await self._category_repo.get_by_id(new_parent_id)
            if parent is None:
                raise NotFoundError("parent_category_not_found")
            await self._reject_cycle(category, parent)

        category.parent_id = parent.id if parent else None
        category.full_slug = join_slug(parent, category.slug)
        await self._rewrite_descendant_paths(category)

        await self._commit_write()
        logger.info("Moved category %s under %s", category.id, parent.full_slug if parent else "<root>")
        return category

    async def _reject_cycle(self, category: Category, new_parent: Category) -> None:
        """Walks up from the new parent; meeting the moved node means a cycle."""
        seen: set[str] = set()
        current: Category | None = new_parent
        while current is not None and current.id not in seen:
            if current.id == category.id:
                raise ValidationError("category_cycle")
            seen.add(current.id)
            current = await self._category_repo.get_by_id(current.parent_id) if current.parent_id else None

    async def _rewrite_descendant_paths(self, category: Category) -> None:
        # Level by level; each child's path derives from its parent's new one.
        paths = {category.id: category.full_slug}
        level = [category.id]
        while level:
            children = await self._category_repo.list_children_of(level)
            level = []
            for child in children:
                if child.id in paths:
                    continue
                child.full_slug = f"{paths[child.parent_id]}/{child.slug}"
                paths[child.id] = child.full_slug
                level.append(child.id)
        logger.debug("Rewrote full slug of %d descendant(s) of %s", len(paths) - 1, category.id)

    async def _commit_write(self) -> None:
        try:
            await self._session.commit()
        except StaleDataError as exc:
            await self._session.rollback()
            raise ConflictError("category_modified_concurrently") from exc
        except IntegrityError as exc:
            await self._session.rollback()
            raise ConflictError("category_slug_taken") from exc

    # --- 4. DELETE ---

    async def delete(self, category_id: str) -> None:
        """Removes a node; its whole subtree goes with it (ON DELETE CASCADE)."""
        deleted = await self._category_repo.delete(category_id)
        if not deleted:
            raise NotFoundError("category_not_found")
        await self._session.commit()
        logger.info("Deleted category %s and its subtree", category_id)
