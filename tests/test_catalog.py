import pytest

from pairfit.core.catalog import ExerciseCatalog, find_exercise_for_difficulty, load_catalog
from pairfit.core.errors import CatalogError, UnknownExerciseError
from pairfit.core.models import ExerciseDefinition


def test_name_links_resolve_to_ids_with_reverse_edges(small_catalog):
    push_up = small_catalog.require("push-up")
    assert push_up.harder_variation_id == "decline-push-up"
    assert push_up.easier_variation_id == "knee-push-up"
    assert small_catalog.require("decline-push-up").easier_variation_id == "push-up"


def test_progression_chain_is_ordered_easiest_first(small_catalog):
    chain = small_catalog.progression_chain(small_catalog.require("decline-push-up"))
    assert [e.id for e in chain] == ["knee-push-up", "push-up", "decline-push-up"]


def test_find_exercise_for_difficulty_prefers_first_on_ties(small_catalog):
    chain = small_catalog.progression_chain(small_catalog.require("push-up"))
    assert find_exercise_for_difficulty(chain, 3.2).id == "push-up"
    assert find_exercise_for_difficulty(chain, 2.5).id == "knee-push-up"
    assert find_exercise_for_difficulty(chain, 9).id == "decline-push-up"


def test_unknown_link_is_dropped():
    catalog = ExerciseCatalog.from_records(
        [{"id": "squat", "name": "Squat", "muscle_group": "quadriceps", "harder_variation": "Jump Squat"}]
    )
    assert catalog.require("squat").harder_variation_id is None


def test_constructor_drops_links_to_unknown_ids():
    catalog = ExerciseCatalog(
        [
            ExerciseDefinition(id="a", name="A", muscle_group="core", harder_variation_id="ghost"),
            ExerciseDefinition(id="b", name="B", muscle_group="core", easier_variation_id="a"),
        ]
    )
    assert catalog.require("a").harder_variation_id == "b"
    assert catalog.require("b").easier_variation_id == "a"


def test_duplicate_ids_and_missing_names_are_rejected():
    with pytest.raises(CatalogError):
        ExerciseCatalog.from_records(
            [{"id": "a", "name": "A", "muscle_group": "core"}, {"id": "a", "name": "B", "muscle_group": "core"}]
        )
    with pytest.raises(CatalogError):
        ExerciseCatalog.from_records([{"id": "a", "muscle_group": "core"}])


def test_require_raises_for_unknown_id(small_catalog):
    assert small_catalog.get("nope") is None
    with pytest.raises(UnknownExerciseError):
        small_catalog.require("nope")


def test_bundled_catalog_loads():
    catalog = load_catalog()
    assert len(catalog) > 30
    assert catalog.by_category("warmup_dynamic", "warmup_cardio")
    assert catalog.partner_exercises()
    chain = catalog.progression_chain(catalog.require("push-up"))
    assert [e.id for e in chain] == ["wall-push-up", "knee-push-up", "push-up", "decline-push-up"]
