"""CatalogLoader — fetches and parses the question list for a survey instance.

A loaded catalog is immutable for the lifetime of the loader: a second
``load`` for the same instance key (e.g. a remount) returns the cached
tuple instead of refetching, so in-flight answers keyed by question id can
never be renumbered or orphaned mid-session.
"""

from __future__ import annotations

import logging

from survey_engine.errors import CatalogUnavailable
from survey_engine.interfaces import SurveyBackend
from survey_engine.models.question import QuestionDefinition, parse_question

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Loads question catalogs from a :class:`SurveyBackend`.

    Args:
        backend: the remote survey service
    """

    def __init__(self, backend: SurveyBackend) -> None:
        self._backend = backend
        self._cache: dict[str, tuple[QuestionDefinition, ...]] = {}

    async def load(self, instance_key: str) -> tuple[QuestionDefinition, ...]:
        """Return the ordered questions for ``instance_key``.

        An empty tuple means "no questions configured" and is not an error.

        Raises:
            CatalogUnavailable: the backend failed, or any entry could not
                be parsed, or two entries share an id.  No partial catalog
                is ever returned.
        """
        cached = self._cache.get(instance_key)
        if cached is not None:
            return cached

        try:
            raw = await self._backend.get_questions(instance_key)
        except CatalogUnavailable:
            raise
        except Exception as exc:
            logger.warning("Catalog fetch failed for %s: %s", instance_key, exc)
            raise CatalogUnavailable(
                f"Failed to load questions for {instance_key}"
            ) from exc

        questions = self._parse(instance_key, raw)
        self._cache[instance_key] = questions
        logger.info("Loaded %d questions for %s", len(questions), instance_key)
        return questions

    def cached(self, instance_key: str) -> tuple[QuestionDefinition, ...] | None:
        """Return the cached catalog without fetching, if any."""
        return self._cache.get(instance_key)

    @staticmethod
    def _parse(instance_key: str, raw: object) -> tuple[QuestionDefinition, ...]:
        if not isinstance(raw, list):
            raise CatalogUnavailable(
                f"Malformed catalog for {instance_key}: expected a list"
            )

        parsed: list[QuestionDefinition] = []
        for entry in raw:
            try:
                parsed.append(parse_question(entry))
            except ValueError as exc:
                logger.warning("Bad question in catalog %s: %s", instance_key, exc)
                raise CatalogUnavailable(
                    f"Malformed catalog for {instance_key}"
                ) from exc

        seen: set[str] = set()
        for q in parsed:
            if q.id in seen:
                raise CatalogUnavailable(
                    f"Duplicate question id {q.id!r} in catalog {instance_key}"
                )
            seen.add(q.id)

        # sorted() is stable, so equal positions keep the backend's order
        return tuple(sorted(parsed, key=lambda q: q.ordinal_position))
