from fastapi import APIRouter, Depends, Response, status

from almond.api.deps import CategoryServiceDep, Locale, require_role
from almond.models.definitions import Role
from almond.schemas import (
    CategoryCreateRequest,
    CategoryDetailResponse,
    CategoryReparentRequest,
    CategoryUpdateRequest,
)
from almond.services.category import to_response

router = APIRouter(prefix="/categories", tags=["categories"])

admin_only = [Depends(require_role(Role.ADMIN.value))]


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=admin_only)
async def create_category(payload: CategoryCreateRequest, service: CategoryServiceDep):
    category = await service.create(payload.translations, parent_id=payload.parent_category_id, slug=payload.slug)
    return {"status": "success", "data": CategoryDetailResponse.model_validate(category)}


@router.get("")
async def list_categories(service: CategoryServiceDep, locale: Locale):
    categories = await service.list_all()
    return {
        "status": "success",
        "results": len(categories),
        "data": [to_response(category, locale) for category in categories],
    }


@router.get("/all-nested")
async def list_nested_categories(service: CategoryServiceDep, locale: Locale):
    return {"status": "success", "data": await service.list_tree(locale)}


@router.get("/{category_id}")
async def get_category(category_id: str, service: CategoryServiceDep, locale: Locale):
    category = await service.get(category_id)
    return {"status": "success", "data": to_response(category, locale)}


@router.get("/{category_id}/hierarchy")
async def get_category_hierarchy(category_id: str, service: CategoryServiceDep, locale: Locale):
    """Root-to-node path of a category, for breadcrumbs."""
    path = await service.resolve_full_path(category_id)
    return {"status": "success", "data": [to_response(category, locale) for category in path]}


@router.patch("/{category_id}", dependencies=admin_only)
async def update_category(category_id: str, payload: CategoryUpdateRequest, service: CategoryServiceDep):
    category = await service.update(category_id, payload.model_dump(exclude_unset=True))
    return {"status": "success", "data": CategoryDetailResponse.model_validate(category)}


@router.patch("/{category_id}/parent", dependencies=admin_only)
async def reparent_category(category_id: str, payload: CategoryReparentRequest, service: CategoryServiceDep):
    category = await service.reparent(category_id, payload.parent_category_id)
    return {"status": "success", "data": CategoryDetailResponse.model_validate(category)}


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=admin_only)
async def delete_category(category_id: str, service: CategoryServiceDep):
    await service.delete(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
