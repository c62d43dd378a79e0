"""Deterministic grading of assignment submissions.

`grade_submission` is a pure function over the stored exercises and the
submitted answer map. Every exercise adds its points to `max_score`;
an exercise adds its points to `score` only when an answer is present
for it and the type's comparison accepts that answer. There is no
partial credit.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional

from .exercises import ExerciseType, parse_matching_pairs


@dataclass(frozen=True)
class GradeResult:
    score: int
    max_score: int


def _never(submitted: str, expected: str) -> bool:
    return False


def _normalized_text(submitted: str, expected: str) -> bool:
    return submitted.strip().casefold() == (expected or "").strip().casefold()


def _exact(submitted: str, expected: str) -> bool:
    return str(submitted) == str(expected)


def _same_pairs(submitted: str, expected: str) -> bool:
    # malformed JSON is simply a wrong answer
    given = parse_matching_pairs(submitted)
    wanted = parse_matching_pairs(expected)
    if given is None or wanted is None:
        return False
    return given == wanted


_COMPARATORS: Dict[ExerciseType, Callable[[str, str], bool]] = {
    ExerciseType.FREE_TEXT: _never,
    ExerciseType.FILL_BLANK: _normalized_text,
    ExerciseType.MATCHING: _same_pairs,
    ExerciseType.MULTIPLE_CHOICE: _exact,
    ExerciseType.TRUE_FALSE: _exact,
    ExerciseType.PRONUNCIATION: _exact,
}

_missing = set(ExerciseType) - set(_COMPARATORS)
if _missing:
    raise RuntimeError(f"no grading rule for exercise types: {sorted(t.value for t in _missing)}")


def is_correct(exercise_type: str, submitted: Optional[str], expected: str) -> bool:
    """Return True when `submitted` earns full credit for this exercise type."""
    if submitted is None:
        return False
    try:
        compare = _COMPARATORS[ExerciseType(exercise_type)]
    except ValueError:
        return False
    return compare(submitted, expected)


def grade_submission(exercises: Iterable, answers: Mapping[str, str]) -> GradeResult:
    """Grade `answers` (keyed by exercise id as a string) against `exercises`.

    `exercises` are objects exposing `id`, `type`, `correct_answer` and
    `points`, typically `AssignmentExercise` rows.
    """
    score = 0
    max_score = 0
    for ex in exercises:
        max_score += ex.points
        submitted = answers.get(str(ex.id))
        if is_correct(ex.type, submitted, ex.correct_answer):
            score += ex.points
    return GradeResult(score=score, max_score=max_score)
