"""Question type models for survey catalogs.

Each question type maps to a specific input widget and answer rule:

    - free_text: open-ended text input; satisfied when non-blank
    - single_choice: pick exactly one option
    - rating: pick one point on a scale (options default to 1..5)
    - bounded_amount: numeric slider/input within [min_value, max_value]

Every model knows how to normalise a raw answer (``coerce_answer``), whether
a stored answer counts toward completeness (``is_satisfied``), and which
submission field carries it (``answer_fields``).

The discriminated ``QuestionDefinition`` union uses ``question_type`` as its
discriminator.  The ``question_mapper`` dict maps type strings to their
Pydantic classes for dynamic deserialisation.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# A stored answer: free text, an option value, or a number.
AnswerValue = Union[str, int, float]


# --- Shared option model ---

class Option(BaseModel):
    """A selectable option with a submitted value and a display label."""

    model_config = ConfigDict(frozen=True)

    value: Union[int, str]
    label: str


# --- Base question type ---

class BaseQuestion(BaseModel, ABC):
    """Fields shared by all question types.

    Backends sometimes send numeric ids; they are normalised to strings so
    answers can always be keyed by ``id``.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    text: str
    ordinal_position: int = 0

    @abstractmethod
    def coerce_answer(self, value: Any) -> AnswerValue:
        """Return the canonical stored form of ``value`` or raise ValueError."""

    @abstractmethod
    def is_satisfied(self, value: Any) -> bool:
        """True if ``value`` counts as a final answer for this question."""

    @abstractmethod
    def answer_fields(self, value: AnswerValue) -> dict[str, Any]:
        """Map a stored answer onto the submission entry field for this type."""


# --- Question types ---

class FreeTextQuestion(BaseQuestion):
    """Open-ended text input.

    Empty text is accepted while the respondent is typing but never counts
    as satisfying.
    """

    question_type: Literal["free_text"] = "free_text"

    def coerce_answer(self, value: Any) -> AnswerValue:
        if not isinstance(value, str):
            raise ValueError(f"Question {self.id} expects text")
        return value

    def is_satisfied(self, value: Any) -> bool:
        return isinstance(value, str) and value.strip() != ""

    def answer_fields(self, value: AnswerValue) -> dict[str, Any]:
        return {"answer_text": value}


class _OptionQuestion(BaseQuestion):
    """Shared behaviour for questions answered by picking one option."""

    options: List[Option] = []

    def find_option(self, value: Any) -> Optional[Option]:
        """Match ``value`` against option values, comparing as strings.

        Radio inputs report their value as text, so ``"3"`` selects the
        option whose value is ``3``.
        """
        if value is None or isinstance(value, bool):
            return None
        wanted = str(value)
        for opt in self.options:
            if str(opt.value) == wanted:
                return opt
        return None

    def coerce_answer(self, value: Any) -> AnswerValue:
        opt = self.find_option(value)
        if opt is None:
            raise ValueError(f"{value!r} is not an option of question {self.id}")
        return opt.value

    def is_satisfied(self, value: Any) -> bool:
        return value is not None and value != ""

    def answer_fields(self, value: AnswerValue) -> dict[str, Any]:
        return {"option_value": value}


class SingleChoiceQuestion(_OptionQuestion):
    """Pick one option from a list."""

    question_type: Literal["single_choice"] = "single_choice"

    @model_validator(mode="after")
    def _chk(self):
        if not self.options:
            raise ValueError(f"single_choice question {self.id} needs options")
        return self


class RatingQuestion(_OptionQuestion):
    """Pick one point on a rating scale.

    When the catalog omits ``options`` they are generated from
    ``scale_min``..``scale_max`` with the number as both value and label.
    """

    question_type: Literal["rating"] = "rating"
    scale_min: int = 1
    scale_max: int = 5

    @model_validator(mode="before")
    @classmethod
    def _default_options(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("options"):
            lo = int(data.get("scale_min", 1))
            hi = int(data.get("scale_max", 5))
            if lo >= hi:
                raise ValueError("scale_min must be < scale_max")
            data = {
                **data,
                "options": [{"value": i, "label": str(i)} for i in range(lo, hi + 1)],
            }
        return data


class BoundedAmountQuestion(BaseQuestion):
    """Numeric slider/input with min/max/step constraints."""

    question_type: Literal["bounded_amount"] = "bounded_amount"
    min_value: float
    max_value: float
    step: float = 1.0
    unit: Optional[str] = None

    @model_validator(mode="after")
    def _chk(self):
        if self.min_value >= self.max_value:
            raise ValueError("min_value must be < max_value")
        return self

    def coerce_answer(self, value: Any) -> AnswerValue:
        # bool is an int subclass; a checkbox value is never an amount
        if isinstance(value, bool) or value is None:
            raise ValueError(f"Question {self.id} expects a number")
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            raise ValueError(f"Question {self.id} expects a number") from None
        if not math.isfinite(number):
            raise ValueError(f"Question {self.id} expects a finite number")
        if number < self.min_value or number > self.max_value:
            raise ValueError(
                f"Answer {number:g} for question {self.id} is outside "
                f"[{self.min_value:g}, {self.max_value:g}]"
            )
        return int(number) if number.is_integer() else number

    def is_satisfied(self, value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def answer_fields(self, value: AnswerValue) -> dict[str, Any]:
        return {"amount": value}


# --- Discriminated union of all question types ---

QuestionDefinition = Annotated[
    Union[
        FreeTextQuestion,
        SingleChoiceQuestion,
        RatingQuestion,
        BoundedAmountQuestion,
    ],
    Field(discriminator="question_type"),
]

# Maps question_type string → Pydantic class for dynamic deserialisation.
question_mapper = {
    "free_text": FreeTextQuestion,
    "single_choice": SingleChoiceQuestion,
    "rating": RatingQuestion,
    "bounded_amount": BoundedAmountQuestion,
}


def parse_question(raw: Any) -> QuestionDefinition:
    """Parse one raw catalog entry into its typed question model.

    Raises ``ValueError`` (pydantic's ``ValidationError`` is a subclass) for
    unknown types or malformed entries.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Question entry must be a mapping, got {type(raw).__name__}")
    qtype = raw.get("question_type")
    cls = question_mapper.get(qtype)
    if cls is None:
        raise ValueError(f"Unknown question_type '{qtype}'")
    return cls(**raw)
