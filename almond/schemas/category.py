from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Translation(BaseModel):
    lang: str = Field(..., min_length=2, max_length=2, description="Language code (uz, ru, en)")
    name: str = Field(..., min_length=1, max_length=120, description="Localized category name")


class CategoryCreateRequest(BaseModel):
    # Presence and the mandatory English entry are checked by the service.
    translations: list[Translation] | None = None
    parent_category_id: str | None = None
    slug: str | None = Field(default=None, max_length=120)


class CategoryUpdateRequest(BaseModel):
    """PATCH body. Unknown keys are kept so a parent change can be refused explicitly."""

    model_config = ConfigDict(extra="allow")

    translations: list[Translation] | None = None
    slug: str | None = Field(default=None, max_length=120)


class CategoryReparentRequest(BaseModel):
    parent_category_id: str | None = Field(..., description="New parent id, or null to make the node a root")


class CategoryResponse(BaseModel):
    """A category rendered for one locale."""

    id: str
    legacy_id: int
    slug: str
    full_slug: str
    parent_category_id: str | None = None
    name: str


class CategoryDetailResponse(BaseModel):
    """Admin view with every translation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    legacy_id: int
    slug: str
    full_slug: str
    parent_id: str | None = None
    translations: list[dict[str, Any]]


class CategoryTreeNode(CategoryResponse):
    children: list["CategoryTreeNode"] = Field(default_factory=list)
