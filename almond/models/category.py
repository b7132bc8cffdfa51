from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Category(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    The Category Table (T_Category).

    Nodes form a tree through `parent_id` only; there are no ORM
    relationships, so traversal is always an explicit query. `full_slug` is
    the root-to-node path of slugs and is kept consistent for the whole
    subtree whenever a node's slug or parent changes.
    """

    __tablename__ = "categories"

    legacy_id: Mapped[int] = mapped_column(
        Integer, nullable=False, unique=True, index=True, comment="Dense increasing id for external references."
    )
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    full_slug: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True, index=True)
    translations: Mapped[list[dict[str, str]]] = mapped_column(
        JSON, nullable=False, default=list, comment="Ordered [{lang, name}] pairs; 'en' is mandatory."
    )
    parent_id: Mapped[None | str] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Parent category; deleting a parent deletes its subtree.",
    )

    # Optimistic lock: concurrent writers to the same row fail with StaleDataError.
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Category {self.full_slug}>"
