"""
JSON persistence for learner snapshots.
Used by the server layer only; the engine modules never touch storage.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from learning_models import LearningPath, PerformanceObservation, UserProfile

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.getenv("MATEMATH_DATA_DIR", str(Path.home() / ".matemath" / "learners")))


class LearnerSnapshot(BaseModel):
    profile: UserProfile
    history: list[PerformanceObservation] = Field(default_factory=list)
    learning_path: Optional[LearningPath] = None


def _learner_path(learner_id: str, data_dir: Optional[Path] = None) -> Path:
    return (data_dir or DATA_DIR) / f"{learner_id}.json"


def load_learner(learner_id: str, data_dir: Optional[Path] = None) -> LearnerSnapshot:
    path = _learner_path(learner_id, data_dir)
    if path.exists():
        return LearnerSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    return LearnerSnapshot(profile=UserProfile(id=learner_id))


def save_learner(snapshot: LearnerSnapshot, data_dir: Optional[Path] = None) -> None:
    directory = data_dir or DATA_DIR
    directory.mkdir(parents=True, exist_ok=True)
    path = _learner_path(snapshot.profile.id, directory)
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    logger.debug(f"Saved snapshot for {snapshot.profile.id} to {path}")
