"""Exercise model: the six gradable exercise variants and their answer encodings.

Every exercise carries its correct answer as a string. For `matching`
exercises the string is a JSON object mapping left terms to right terms;
for `true_false` it is the literal `"true"` or `"false"`; for every other
type it is plain text. The helpers here convert between the authoring
representation and the stored one and build the taker-facing view that
never contains a correct answer.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional


class ExerciseType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    TRUE_FALSE = "true_false"
    MATCHING = "matching"
    FREE_TEXT = "free_text"
    PRONUNCIATION = "pronunciation"


BLANK_MARKER = "___"


def encode_correct_answer(exercise_type: ExerciseType, value: Any) -> str:
    """Normalize an authored correct answer to its stored string form.

    Matching answers may arrive either as a mapping or as an already
    encoded JSON string; both are stored as a JSON object in authored
    order. Booleans for `true_false` become `"true"`/`"false"`.
    """
    if exercise_type == ExerciseType.MATCHING:
        pairs = value
        if isinstance(value, str):
            pairs = json.loads(value)
        if not isinstance(pairs, dict):
            raise ValueError("matching correct_answer must be an object of term pairs")
        return json.dumps({str(k): str(v) for k, v in pairs.items()}, ensure_ascii=False)
    if exercise_type == ExerciseType.TRUE_FALSE:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip().lower()
        if text not in ("true", "false"):
            raise ValueError("true_false correct_answer must be 'true' or 'false'")
        return text
    if value is None:
        return ""
    return str(value)


def parse_matching_pairs(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode a matching answer; return None when it is not a JSON object."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def public_exercise_view(exercise) -> Dict[str, Any]:
    """Taker-facing representation of a stored exercise (no correct answer).

    Matching exercises expose their left terms in authored order and the
    right terms sorted, so the pairing itself is not revealed.
    """
    out: Dict[str, Any] = {
        'id': exercise.id,
        'type': exercise.type,
        'question': exercise.question,
        'options': exercise.options if exercise.type == ExerciseType.MULTIPLE_CHOICE else None,
        'points': exercise.points,
        'order_index': exercise.order_index,
    }
    if exercise.type == ExerciseType.MATCHING:
        pairs = parse_matching_pairs(exercise.correct_answer) or {}
        out['left_terms'] = list(pairs.keys())
        out['right_terms'] = sorted(str(v) for v in pairs.values())
    return out
