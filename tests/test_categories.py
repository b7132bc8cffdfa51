import pytest
from sqlalchemy.orm.exc import StaleDataError

from almond.core.text import slugify
from almond.exceptions.http import ConflictError, NotFoundError, ValidationError
from almond.repositories import CategoryRepository
from almond.services import CategoryService
from almond.services.category import localize

pytestmark = pytest.mark.anyio


def names(en: str, **others: str) -> list[dict[str, str]]:
    return [{"lang": "en", "name": en}] + [{"lang": lang, "name": name} for lang, name in others.items()]


async def build_vehicles_tree(service: CategoryService):
    vehicles = await service.create(names("Vehicles", ru="Транспорт"))
    cars = await service.create(names("Cars"), parent_id=vehicles.id)
    sedans = await service.create(names("Sedans"), parent_id=cars.id)
    return vehicles, cars, sedans


# --- slugify / localize ---


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Cars & Trucks", "cars-trucks"),
        ("  Électronique  ", "electronique"),
        ("Home---Garden", "home-garden"),
        ("!!!", ""),
    ],
)
def test_slugify(raw, expected):
    assert slugify(raw) == expected


async def test_localize_falls_back_to_english_then_first(category_service):
    category = await category_service.create([{"lang": "ru", "name": "Авто"}, {"lang": "en", "name": "Auto"}])

    assert localize(category, "ru") == "Авто"
    assert localize(category, "uz") == "Auto"

    category.translations = [{"lang": "ru", "name": "Авто"}]
    assert localize(category, "uz") == "Авто"

    category.translations = []
    assert localize(category, "uz") == ""


# --- create ---


async def test_create_root_and_children_build_full_slug(category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)

    assert (vehicles.slug, vehicles.full_slug) == ("vehicles", "vehicles")
    assert cars.full_slug == "vehicles/cars"
    assert sedans.full_slug == "vehicles/cars/sedans"
    assert [c.legacy_id for c in (vehicles, cars, sedans)] == [1, 2, 3]


async def test_create_uses_slug_override(category_service):
    category = await category_service.create(names("Real Estate"), slug="Property For Sale")

    assert category.slug == "property-for-sale"


@pytest.mark.parametrize(
    ("translations", "key"),
    [
        (None, "translations_required"),
        ([], "translations_required"),
        ([{"lang": "ru", "name": "Авто"}], "english_translation_required"),
        ([{"lang": "en", "name": "  "}], "english_translation_required"),
        ([{"lang": "en", "name": "A"}, {"lang": "en", "name": "B"}], "duplicate_translation_language"),
    ],
)
async def test_create_validates_translations(category_service, translations, key):
    with pytest.raises(ValidationError) as exc_info:
        await category_service.create(translations)
    assert exc_info.value.key == key


async def test_create_rejects_unsluggable_name(category_service):
    with pytest.raises(ValidationError) as exc_info:
        await category_service.create(names("???"))
    assert exc_info.value.key == "invalid_slug"


async def test_duplicate_slug_is_a_conflict(category_service):
    await category_service.create(names("Cars"))

    with pytest.raises(ConflictError):
        await category_service.create(names("CARS"))


async def test_unknown_parent_is_not_found(category_service):
    with pytest.raises(NotFoundError) as exc_info:
        await category_service.create(names("Cars"), parent_id="missing")
    assert exc_info.value.key == "parent_category_not_found"


# --- read ---


async def test_resolve_full_path_lists_root_first(category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)

    path = await category_service.resolve_full_path(sedans.id)

    assert [c.id for c in path] == [vehicles.id, cars.id, sedans.id]
    assert "/".join(c.slug for c in path) == sedans.full_slug


async def test_list_tree_nests_children(category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)
    electronics = await category_service.create(names("Electronics"))

    tree = await category_service.list_tree("ru")

    assert [node.id for node in tree] == [vehicles.id, electronics.id]
    assert tree[0].name == "Транспорт"
    assert tree[0].children[0].id == cars.id
    assert tree[0].children[0].children[0].id == sedans.id
    assert tree[1].children == []


async def test_list_tree_from_a_subtree_root(category_service):
    _, cars, sedans = await build_vehicles_tree(category_service)

    tree = await category_service.list_tree("en", root_id=cars.id)

    assert [node.id for node in tree] == [cars.id]
    assert [node.id for node in tree[0].children] == [sedans.id]


async def test_get_unknown_category_is_not_found(category_service):
    with pytest.raises(NotFoundError):
        await category_service.get("missing")


# --- reparent ---


async def test_reparent_rewrites_full_slug_of_subtree(category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)
    transport = await category_service.create(names("Transport"))

    moved = await category_service.reparent(cars.id, transport.id)

    assert moved.parent_id == transport.id
    assert moved.full_slug == "transport/cars"
    assert (await category_service.get(sedans.id)).full_slug == "transport/cars/sedans"


async def test_reparent_to_top_level(category_service):
    _, cars, sedans = await build_vehicles_tree(category_service)

    moved = await category_service.reparent(cars.id, None)

    assert moved.parent_id is None
    assert moved.full_slug == "cars"
    assert (await category_service.get(sedans.id)).full_slug == "cars/sedans"


async def test_reparent_under_itself_is_rejected(category_service):
    vehicles, _, _ = await build_vehicles_tree(category_service)

    with pytest.raises(ValidationError) as exc_info:
        await category_service.reparent(vehicles.id, vehicles.id)
    assert exc_info.value.key == "category_own_parent"


async def test_reparent_under_a_descendant_is_rejected(category_service):
    vehicles, _, sedans = await build_vehicles_tree(category_service)

    with pytest.raises(ValidationError) as exc_info:
        await category_service.reparent(vehicles.id, sedans.id)
    assert exc_info.value.key == "category_cycle"
    assert (await category_service.get(vehicles.id)).parent_id is None


async def test_stale_version_is_reported_as_conflict(session, category_service, monkeypatch):
    category = await category_service.create(names("Cars"))

    async def fail_commit():
        raise StaleDataError("version mismatch")

    monkeypatch.setattr(session, "commit", fail_commit)
    with pytest.raises(ConflictError) as exc_info:
        await category_service.reparent(category.id, None)
    assert exc_info.value.key == "category_modified_concurrently"


async def test_concurrent_writer_bumps_version(sessionmaker, category_service):
    category = await category_service.create(names("Cars"))

    async with sessionmaker() as reader:
        stale = await CategoryRepository(reader).get_by_id(category.id)
        await reader.commit()

        async with sessionmaker() as writer:
            fresh = await CategoryRepository(writer).get_by_id(category.id)
            fresh.translations = names("Cars", ru="Машины")
            await writer.commit()

        stale.translations = names("Autos")
        with pytest.raises(StaleDataError):
            await reader.commit()


# --- update ---


async def test_update_slug_cascades_to_descendants(category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)

    updated = await category_service.update(vehicles.id, {"slug": "Transport"})

    assert updated.full_slug == "transport"
    assert (await category_service.get(cars.id)).full_slug == "transport/cars"
    assert (await category_service.get(sedans.id)).full_slug == "transport/cars/sedans"


async def test_update_translations_keeps_slug(category_service):
    category = await category_service.create(names("Cars"))

    updated = await category_service.update(category.id, {"translations": names("Automobiles", uz="Avtomobillar")})

    assert updated.slug == "cars"
    assert localize(updated, "uz") == "Avtomobillar"


@pytest.mark.parametrize(
    ("changes", "key"),
    [
        ({}, "no_fields_to_update"),
        ({"slug": None}, "no_fields_to_update"),
        ({"parent_category_id": None}, "parent_update_not_allowed"),
        ({"slug": "x", "parent_category_id": "y"}, "parent_update_not_allowed"),
    ],
)
async def test_update_rejects_bad_bodies(category_service, changes, key):
    category = await category_service.create(names("Cars"))

    with pytest.raises(ValidationError) as exc_info:
        await category_service.update(category.id, changes)
    assert exc_info.value.key == key


async def test_update_to_taken_slug_is_a_conflict(category_service):
    await category_service.create(names("Cars"))
    bikes = await category_service.create(names("Bikes"))

    with pytest.raises(ConflictError):
        await category_service.update(bikes.id, {"slug": "cars"})


# --- delete ---


async def test_delete_cascades_to_subtree(sessionmaker, category_service):
    vehicles, cars, sedans = await build_vehicles_tree(category_service)
    electronics = await category_service.create(names("Electronics"))

    await category_service.delete(vehicles.id)

    async with sessionmaker() as fresh:
        remaining = await CategoryRepository(fresh).list_all()
    assert [c.id for c in remaining] == [electronics.id]


async def test_delete_unknown_category_is_not_found(category_service):
    with pytest.raises(NotFoundError):
        await category_service.delete("missing")


async def test_legacy_id_follows_max(category_service):
    first = await category_service.create(names("One"))
    second = await category_service.create(names("Two"))
    await category_service.delete(second.id)

    third = await category_service.create(names("Three"))

    assert (first.legacy_id, third.legacy_id) == (1, 2)
