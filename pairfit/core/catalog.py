"""
Read-only exercise catalog.

Raw catalog records may link variations by exercise name (as most exercise
databases do) or by id. Links are resolved to id edges once, when the catalog
is built; after that every lookup and chain walk is a dict access.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from pairfit.config import settings
from pairfit.core.errors import CatalogError, UnknownExerciseError
from pairfit.core.models import ExerciseDefinition
from pairfit.infra import log_utils

WARMUP_CATEGORIES = ("warmup_dynamic", "warmup_cardio")
COOLDOWN_CATEGORIES = ("cooldown_stretch", "cooldown_mobility", "flexibility_static")


def _normalise(name: str) -> str:
    return " ".join(name.lower().replace("-", " ").split())


class ExerciseCatalog:
    """Immutable collection of exercise definitions with variation edges."""

    def __init__(self, exercises: Iterable[ExerciseDefinition]):
        self._by_id: Dict[str, ExerciseDefinition] = {}
        for exercise in exercises:
            if exercise.id in self._by_id:
                raise CatalogError(f"Duplicate exercise id: {exercise.id}")
            self._by_id[exercise.id] = exercise
        self._by_id = self._link_reverse_edges(self._drop_dangling_links(self._by_id))

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "ExerciseCatalog":
        """
        Build a catalog from raw dictionaries.

        `harder_variation` / `easier_variation` may hold an exercise name; they
        are resolved to `harder_variation_id` / `easier_variation_id`. Links to
        unknown exercises are dropped with a warning.
        """
        records = [dict(r) for r in records]
        name_index: Dict[str, str] = {}
        for r in records:
            if "id" not in r or "name" not in r:
                raise CatalogError(f"Catalog record missing id or name: {r}")
            name_index[_normalise(r["name"])] = r["id"]
        known_ids = {r["id"] for r in records}

        exercises: List[ExerciseDefinition] = []
        for r in records:
            for direction in ("harder", "easier"):
                name = r.pop(f"{direction}_variation", None)
                key = f"{direction}_variation_id"
                if r.get(key) is None and name:
                    r[key] = name_index.get(_normalise(name))
                    if r[key] is None:
                        log_utils.log_message(
                            f"[catalog] {r['id']}: {direction} variation '{name}' not found, link dropped",
                            "WARN",
                        )
                elif r.get(key) is not None and r[key] not in known_ids:
                    log_utils.log_message(
                        f"[catalog] {r['id']}: {direction} variation id '{r[key]}' not found, link dropped",
                        "WARN",
                    )
                    r[key] = None
            try:
                exercises.append(ExerciseDefinition.model_validate(r))
            except ValidationError as e:
                raise CatalogError(f"Invalid catalog record {r.get('id')}: {e}") from e
        return cls(exercises)

    @staticmethod
    def _drop_dangling_links(by_id: Dict[str, ExerciseDefinition]) -> Dict[str, ExerciseDefinition]:
        cleaned = dict(by_id)
        for ex in by_id.values():
            for key in ("harder_variation_id", "easier_variation_id"):
                target = getattr(ex, key)
                if target is not None and target not in by_id:
                    log_utils.log_message(f"[catalog] {ex.id}: variation id '{target}' not found, link dropped", "WARN")
                    cleaned[ex.id] = cleaned[ex.id].model_copy(update={key: None})
        return cleaned

    @staticmethod
    def _link_reverse_edges(by_id: Dict[str, ExerciseDefinition]) -> Dict[str, ExerciseDefinition]:
        # A harder link implies the matching easier link on the other side, and vice versa.
        updates: Dict[str, Dict[str, str]] = {}
        for ex in by_id.values():
            if ex.harder_variation_id and by_id[ex.harder_variation_id].easier_variation_id is None:
                updates.setdefault(ex.harder_variation_id, {})["easier_variation_id"] = ex.id
            if ex.easier_variation_id and by_id[ex.easier_variation_id].harder_variation_id is None:
                updates.setdefault(ex.easier_variation_id, {})["harder_variation_id"] = ex.id
        linked = dict(by_id)
        for ex_id, changes in updates.items():
            linked[ex_id] = linked[ex_id].model_copy(update=changes)
        return linked

    # --- Lookups -------------------------------------------------------------
    def __iter__(self) -> Iterator[ExerciseDefinition]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, exercise_id: object) -> bool:
        return exercise_id in self._by_id

    def all(self) -> List[ExerciseDefinition]:
        return list(self._by_id.values())

    def get(self, exercise_id: str) -> Optional[ExerciseDefinition]:
        return self._by_id.get(exercise_id)

    def require(self, exercise_id: str) -> ExerciseDefinition:
        try:
            return self._by_id[exercise_id]
        except KeyError:
            raise UnknownExerciseError(exercise_id) from None

    def by_muscle_group(self, muscle_group: str) -> List[ExerciseDefinition]:
        return [e for e in self._by_id.values() if e.muscle_group == muscle_group]

    def by_category(self, *categories: str) -> List[ExerciseDefinition]:
        return [e for e in self._by_id.values() if e.category in categories]

    def partner_exercises(self) -> List[ExerciseDefinition]:
        return [e for e in self._by_id.values() if e.is_partner_exercise]

    # --- Variation graph -----------------------------------------------------
    def harder(self, exercise: ExerciseDefinition) -> Optional[ExerciseDefinition]:
        if exercise.harder_variation_id is None:
            return None
        return self._by_id.get(exercise.harder_variation_id)

    def easier(self, exercise: ExerciseDefinition) -> Optional[ExerciseDefinition]:
        if exercise.easier_variation_id is None:
            return None
        return self._by_id.get(exercise.easier_variation_id)

    def progression_chain(self, exercise: ExerciseDefinition) -> List[ExerciseDefinition]:
        """Ordered easiest -> hardest chain that contains `exercise`."""
        chain = [exercise]
        seen = {exercise.id}

        current = self.easier(exercise)
        while current is not None and current.id not in seen:
            chain.insert(0, current)
            seen.add(current.id)
            current = self.easier(current)

        current = self.harder(exercise)
        while current is not None and current.id not in seen:
            chain.append(current)
            seen.add(current.id)
            current = self.harder(current)

        return chain


def find_exercise_for_difficulty(
    chain: List[ExerciseDefinition], target_difficulty: float
) -> ExerciseDefinition:
    """Return the chain member whose difficulty is closest to the target (first wins ties)."""
    best = chain[0]
    best_diff = abs(best.difficulty - target_difficulty)
    for exercise in chain:
        diff = abs(exercise.difficulty - target_difficulty)
        if diff < best_diff:
            best, best_diff = exercise, diff
    return best


def load_catalog(path: Optional[Path] = None) -> ExerciseCatalog:
    """Load a catalog from a JSON list of exercise records."""
    path = path or settings.catalog_path
    with Path(path).open("r", encoding="utf-8") as f:
        records = json.load(f)
    catalog = ExerciseCatalog.from_records(records)
    log_utils.log_message(f"[catalog] Loaded {len(catalog)} exercises from {path}")
    return catalog
