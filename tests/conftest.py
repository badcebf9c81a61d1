from datetime import datetime

import pytest

from pairfit.config import settings
from pairfit.core.catalog import ExerciseCatalog, load_catalog
from pairfit.core.couple_tracker import CoupleTracker
from pairfit.core.models import WorkoutLog
from pairfit.core.progress_tracker import ProgressTracker
from pairfit.data_access.memory_dal import InMemoryDal

NOW = datetime(2024, 3, 4, 18, 0)  # a Monday evening

SMALL_CATALOG = [
    {"id": "knee-push-up", "name": "Knee Push-Up", "muscle_group": "chest", "primary_muscles": ["chest"],
     "difficulty": 2, "default_reps": 12, "harder_variation": "Push-Up"},
    {"id": "push-up", "name": "Push-Up", "muscle_group": "chest", "primary_muscles": ["chest", "triceps"],
     "difficulty": 3, "default_reps": 10, "contraindicated_injuries": ["wrist"],
     "requires_pushup_ability": True, "harder_variation": "Decline Push-Up"},
    {"id": "decline-push-up", "name": "Decline Push-Up", "muscle_group": "chest", "primary_muscles": ["chest"],
     "difficulty": 4, "default_reps": 8, "requires_pushup_ability": True},
    {"id": "dumbbell-row", "name": "Dumbbell Row", "muscle_group": "back", "primary_muscles": ["back"],
     "difficulty": 3, "default_reps": 10, "equipment_required": ["dumbbell"],
     "equipment_alternatives": [["band"]]},
    {"id": "plank", "name": "Plank", "muscle_group": "core", "primary_muscles": ["core"],
     "difficulty": 2, "default_duration_seconds": 30, "requires_plank_ability": True},
    {"id": "bear-crawl", "name": "Bear Crawl", "muscle_group": "full_body", "difficulty": 3,
     "space_required": "large", "default_duration_seconds": 30},
]


@pytest.fixture(autouse=True)
def isolated_project_root(tmp_path, monkeypatch):
    # Logs and JSON storage land under the test's temp directory
    monkeypatch.setattr(settings, "PROJECT_ROOT", tmp_path)
    return tmp_path


@pytest.fixture
def small_catalog() -> ExerciseCatalog:
    return ExerciseCatalog.from_records(SMALL_CATALOG)


@pytest.fixture
def catalog() -> ExerciseCatalog:
    return load_catalog()


@pytest.fixture
def dal() -> InMemoryDal:
    return InMemoryDal()


@pytest.fixture
def make_profile(catalog, dal):
    tracker = ProgressTracker(dal, catalog)

    def _make(user_id="alex", fitness_level="beginner", injuries=(), goals=()):
        return tracker.create_initial_profile(user_id, fitness_level, injuries, goals, now=NOW)

    return _make


@pytest.fixture
def couple(dal):
    return CoupleTracker(dal).create_initial_profile("couple-1", "alex", "sam", now=NOW)


@pytest.fixture
def workout_log():
    return WorkoutLog(id="session-1", couple_id="couple-1", person_a_id="alex", person_b_id="sam", start_time=NOW)
