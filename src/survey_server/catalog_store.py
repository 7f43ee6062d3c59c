"""CatalogStore — loads survey question catalogs from YAML.

One file per catalog under ``catalogs/``::

    id: sentiment-form-1
    title: Monthly sentiment (form 1)
    questions:
      - id: q1
        question_type: rating
        text: How satisfied are you with your work this month?
        ordinal_position: 1

Questions are parsed with the same models the engine uses, so a catalog
the server accepts is one every client can render.  Instance keys carry an
optional ``@period`` suffix; lookups strip it to find the catalog.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, model_validator

from survey_engine.instances import catalog_id_for
from survey_engine.models.question import QuestionDefinition

logger = logging.getLogger(__name__)


def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class SurveyCatalog(BaseModel):
    """One survey's question set."""

    id: str
    title: str = ""
    description: Optional[str] = None
    questions: List[QuestionDefinition] = []

    @model_validator(mode="after")
    def _unique_ids(self):
        seen: set[str] = set()
        for q in self.questions:
            if q.id in seen:
                raise ValueError(f"Duplicate question id '{q.id}' in catalog {self.id}")
            seen.add(q.id)
        return self

    def ordered_questions(self) -> list[QuestionDefinition]:
        return sorted(self.questions, key=lambda q: q.ordinal_position)


class CatalogStore:
    """In-memory registry of survey catalogs keyed by catalog id."""

    def __init__(self, catalog_dir: str | Path | None = None) -> None:
        if catalog_dir is None:
            catalog_dir = find_repo_root() / "catalogs"
        self._base = Path(catalog_dir)
        self._catalogs: dict[str, SurveyCatalog] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every ``*.yaml`` file in the catalog directory.

        Raises:
            FileNotFoundError: the directory does not exist
            ValueError: a catalog is malformed or an id is defined twice
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Catalog directory not found: {self._base}")

        for path in sorted(self._base.glob("*.yaml")):
            data = load_yaml(path) or {}
            data.setdefault("id", path.stem)
            self.add(SurveyCatalog.model_validate(data))

        logger.info(
            "Loaded %d survey catalogs from %s", len(self._catalogs), self._base,
        )

    def add(self, catalog: SurveyCatalog) -> None:
        if catalog.id in self._catalogs:
            raise ValueError(f"Catalog '{catalog.id}' already exists")
        self._catalogs[catalog.id] = catalog

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def catalogs(self) -> list[SurveyCatalog]:
        return list(self._catalogs.values())

    def get(self, instance_key: str) -> SurveyCatalog:
        """Return the catalog for ``instance_key``.

        Raises:
            KeyError: no catalog matches the key
        """
        catalog_id = catalog_id_for(instance_key)
        try:
            return self._catalogs[catalog_id]
        except KeyError:
            raise KeyError(f"Unknown survey catalog '{catalog_id}'") from None

    def questions_for(self, instance_key: str) -> list[QuestionDefinition]:
        return self.get(instance_key).ordered_questions()
