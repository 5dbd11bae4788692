from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, or_, and_
from sqlalchemy.orm import Session

from daypart_scheduler.models.daypart import DaypartDefinition, DefinitionScope
from daypart_scheduler.models.store import Store


# Least specific first; later levels replace earlier ones by name
SCOPE_PRECEDENCE = [DefinitionScope.GLOBAL, DefinitionScope.CONCEPT, DefinitionScope.STORE]


@dataclass(frozen=True)
class EffectiveDefinition:
    """A daypart definition as seen by one store after scope resolution."""
    id: UUID
    name: str
    display_label: str
    color: Optional[str]
    icon: Optional[str]
    description: Optional[str]
    sort_order: int
    source_level: DefinitionScope
    is_customized: bool  # shadows a less specific definition with the same name

    @classmethod
    def from_model(cls, definition: DaypartDefinition, is_customized: bool = False) -> "EffectiveDefinition":
        return cls(
            id=definition.id,
            name=definition.name,
            display_label=definition.display_label,
            color=definition.color,
            icon=definition.icon,
            description=definition.description,
            sort_order=definition.sort_order or 0,
            source_level=definition.scope,
            is_customized=is_customized,
        )


def effective_definitions(
    definitions: Iterable[DaypartDefinition],
    store_id: UUID,
    concept_id: Optional[UUID],
) -> List[EffectiveDefinition]:
    """
    Resolve the definitions visible to a store.

    Global definitions come first; a concept-level definition replaces a
    global one with the same name, and a store-level definition replaces
    anything before it. Definitions scoped to other stores or concepts are
    ignored.

    Returns:
        Definitions ordered by sort_order, then name
    """
    by_level: Dict[DefinitionScope, List[DaypartDefinition]] = {level: [] for level in SCOPE_PRECEDENCE}
    for definition in definitions:
        scope = definition.scope
        if scope == DefinitionScope.STORE and definition.store_id != store_id:
            continue
        if scope == DefinitionScope.CONCEPT and (concept_id is None or definition.concept_id != concept_id):
            continue
        by_level[scope].append(definition)

    resolved: Dict[str, EffectiveDefinition] = {}
    for level in SCOPE_PRECEDENCE:
        # Stable order inside a level so duplicate names resolve the same way every time
        for definition in sorted(by_level[level], key=lambda d: (d.sort_order or 0, str(d.id))):
            existing = resolved.get(definition.name)
            shadows = existing is not None and existing.source_level != level
            resolved[definition.name] = EffectiveDefinition.from_model(definition, is_customized=shadows)

    return sorted(resolved.values(), key=lambda d: (d.sort_order, d.name))


class DaypartRegistry:
    """
    Reads daypart definitions for a store from the database and resolves scope.
    """

    def __init__(self, db: Session):
        self.db = db

    def load_definitions(self, store_id: UUID, concept_id: Optional[UUID]) -> List[DaypartDefinition]:
        """Fetch every definition that could apply to the store (global, its concept, itself)."""
        conditions = [
            and_(DaypartDefinition.store_id.is_(None), DaypartDefinition.concept_id.is_(None)),
            DaypartDefinition.store_id == store_id,
        ]
        if concept_id is not None:
            conditions.append(DaypartDefinition.concept_id == concept_id)

        stmt = select(DaypartDefinition).where(or_(*conditions))
        return list(self.db.execute(stmt).scalars().all())

    def for_store(self, store: Store) -> List[EffectiveDefinition]:
        definitions = self.load_definitions(store.id, store.concept_id)
        return effective_definitions(definitions, store.id, store.concept_id)
