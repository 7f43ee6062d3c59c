"""Server-side submission validation.

Checks a submission against its catalog with the engine's own question
models and returns the canonical answer list that gets stored and hashed.
A client that passed the engine's completeness check always passes here.
"""

from typing import Any

from survey_engine.models.payload import AnswerEntry
from survey_engine.models.question import QuestionDefinition


def canonical_answers(
    questions: list[QuestionDefinition], entries: list[AnswerEntry]
) -> list[dict[str, Any]]:
    """Validate ``entries`` against ``questions``.

    Returns:
        One ``{"question_id": ..., <value field>: ...}`` dict per question,
        in catalog order, with values normalised by ``coerce_answer``.

    Raises:
        ValueError: unknown or duplicate question ids, a value in the wrong
            field, an invalid or blank answer, or an unanswered question
    """
    by_id = {q.id: q for q in questions}
    received: dict[str, AnswerEntry] = {}
    for entry in entries:
        if entry.question_id not in by_id:
            raise ValueError(f"Unknown question '{entry.question_id}'")
        if entry.question_id in received:
            raise ValueError(f"Question '{entry.question_id}' answered twice")
        received[entry.question_id] = entry

    canonical: list[dict[str, Any]] = []
    for question in questions:
        entry = received.get(question.id)
        if entry is None:
            raise ValueError(f"Question '{question.id}' is unanswered")

        raw = entry.value()
        value = question.coerce_answer(raw)
        fields = question.answer_fields(value)
        (field_name,) = fields
        if getattr(entry, field_name) is None:
            raise ValueError(
                f"Question '{question.id}' expects its answer in '{field_name}'"
            )
        if not question.is_satisfied(value):
            raise ValueError(f"Question '{question.id}' is unanswered")
        canonical.append({"question_id": question.id, **fields})
    return canonical
