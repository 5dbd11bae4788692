"""
Tests for daypart definition scope resolution.
"""
from uuid import uuid4

from daypart_scheduler.models.daypart import DaypartDefinition, DefinitionScope
from daypart_scheduler.services.daypart_registry import DaypartRegistry, effective_definitions

from conftest import make_definition, make_store

STORE_ID = uuid4()
CONCEPT_ID = uuid4()


def definition(name, sort_order=0, store_id=None, concept_id=None, label=None):
    return DaypartDefinition(
        id=uuid4(),
        name=name,
        display_label=label or name,
        sort_order=sort_order,
        store_id=store_id,
        concept_id=concept_id,
    )


class TestEffectiveDefinitions:

    def test_globals_only(self):
        result = effective_definitions(
            [definition("lunch", 2), definition("breakfast", 1)], STORE_ID, CONCEPT_ID
        )
        assert [d.name for d in result] == ["breakfast", "lunch"]
        assert all(d.source_level == DefinitionScope.GLOBAL for d in result)
        assert not any(d.is_customized for d in result)

    def test_store_level_replaces_global_and_concept(self):
        """A store-level happy_hour hides both the concept and the global one."""
        global_def = definition("happy_hour", label="Happy Hour")
        concept_def = definition("happy_hour", concept_id=CONCEPT_ID, label="Concept Happy Hour")
        store_def = definition("happy_hour", store_id=STORE_ID, label="Store Happy Hour")

        result = effective_definitions([global_def, concept_def, store_def], STORE_ID, CONCEPT_ID)

        assert len(result) == 1
        assert result[0].id == store_def.id
        assert result[0].display_label == "Store Happy Hour"
        assert result[0].source_level == DefinitionScope.STORE
        assert result[0].is_customized

    def test_concept_level_replaces_global(self):
        global_def = definition("dinner")
        concept_def = definition("dinner", concept_id=CONCEPT_ID)

        result = effective_definitions([global_def, concept_def], STORE_ID, CONCEPT_ID)

        assert [d.id for d in result] == [concept_def.id]
        assert result[0].source_level == DefinitionScope.CONCEPT
        assert result[0].is_customized

    def test_other_stores_and_concepts_ignored(self):
        mine = definition("breakfast")
        other_store = definition("breakfast", store_id=uuid4())
        other_concept = definition("late_night", concept_id=uuid4())

        result = effective_definitions([mine, other_store, other_concept], STORE_ID, CONCEPT_ID)

        assert [d.id for d in result] == [mine.id]

    def test_concept_definitions_ignored_without_concept(self):
        result = effective_definitions([definition("dinner", concept_id=CONCEPT_ID)], STORE_ID, None)
        assert result == []

    def test_store_only_definition_is_not_customized(self):
        result = effective_definitions([definition("brunch", store_id=STORE_ID)], STORE_ID, CONCEPT_ID)
        assert result[0].source_level == DefinitionScope.STORE
        assert not result[0].is_customized

    def test_ties_broken_by_name(self):
        result = effective_definitions(
            [definition("lunch", 1), definition("dinner", 1), definition("breakfast", 0)],
            STORE_ID,
            CONCEPT_ID,
        )
        assert [d.name for d in result] == ["breakfast", "dinner", "lunch"]


class TestDaypartRegistry:

    def test_for_store_loads_visible_definitions(self, db):
        concept_id = uuid4()
        store = make_store(db, concept_id=concept_id)
        other_store = make_store(db, name="Other Store")

        make_definition(db, "breakfast", sort_order=1)
        make_definition(db, "lunch", sort_order=2)
        make_definition(db, "lunch", sort_order=2, concept_id=concept_id, display_label="Concept Lunch")
        make_definition(db, "happy_hour", sort_order=3, store_id=store.id)
        make_definition(db, "late_night", sort_order=4, store_id=other_store.id)

        result = DaypartRegistry(db).for_store(store)

        assert [d.name for d in result] == ["breakfast", "lunch", "happy_hour"]
        assert result[1].display_label == "Concept Lunch"
