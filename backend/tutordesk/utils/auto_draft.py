"""Draft exercises from authored lesson sections.

The generator is a best-effort helper for tutors: it turns vocabulary
lists into a matching exercise and grammar example sentences into
fill-in-the-blank exercises. Results are meant to be edited, so the
rules are deliberately simple and any section that does not fit them
is skipped without error.
"""

from typing import Any, Iterable, List, Sequence

from pydantic import TypeAdapter, ValidationError

from ..exercises import BLANK_MARKER
from ..schemas import (
    ExerciseIn,
    FillBlankIn,
    GrammarSectionIn,
    LessonSectionIn,
    MatchingIn,
    VocabularySectionIn,
)

MATCHING_QUESTION = "Match the words with their translations"
MAX_MATCHING_PAIRS = 5
MAX_EXAMPLES_PER_SECTION = 3
MIN_SENTENCE_TOKENS = 3

_SECTION_ADAPTER = TypeAdapter(LessonSectionIn)


def _parse_section(raw: Any):
    try:
        return _SECTION_ADAPTER.validate_python(raw)
    except ValidationError:
        return None


def _draft_matching(section: VocabularySectionIn) -> List[MatchingIn]:
    if len(section.words) < 2:
        return []
    pairs = {}
    for w in section.words[:MAX_MATCHING_PAIRS]:
        pairs[w.word] = w.translation
    return [MatchingIn(question=MATCHING_QUESTION, correct_answer=pairs, points=len(pairs))]


def blank_out(sentence: str):
    """Return `(question, answer)` with the middle token blanked, or None.

    Tokens are split on single spaces; sentences with fewer than three
    tokens are not used.
    """
    tokens = sentence.split(' ')
    if len(tokens) < MIN_SENTENCE_TOKENS:
        return None
    blank_idx = len(tokens) // 2
    answer = tokens[blank_idx]
    question = ' '.join(BLANK_MARKER if i == blank_idx else t for i, t in enumerate(tokens))
    return question, answer


def _draft_fill_blanks(section: GrammarSectionIn) -> List[FillBlankIn]:
    out = []
    for example in section.examples[:MAX_EXAMPLES_PER_SECTION]:
        blanked = blank_out(example.sentence)
        if blanked is None:
            continue
        question, answer = blanked
        out.append(FillBlankIn(question=question, correct_answer=answer, points=1))
    return out


def draft_exercises(sections: Iterable[Any]) -> List[ExerciseIn]:
    """Generate exercises for every usable section, in section order."""
    drafted: List[ExerciseIn] = []
    for raw in sections or []:
        section = _parse_section(raw)
        if isinstance(section, VocabularySectionIn):
            drafted.extend(_draft_matching(section))
        elif isinstance(section, GrammarSectionIn):
            drafted.extend(_draft_fill_blanks(section))
    return drafted


def auto_draft_from_lesson(sections: Iterable[Any], existing: Sequence[ExerciseIn] = ()) -> List[ExerciseIn]:
    """Append drafted exercises after `existing`; existing items are never replaced."""
    return list(existing) + draft_exercises(sections)
