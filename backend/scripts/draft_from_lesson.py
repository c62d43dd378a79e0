"""CLI script to draft assignment exercises from a lesson export.

Usage: python scripts/draft_from_lesson.py LESSON.json [--existing EXERCISES.json]

`LESSON.json` holds either a list of lesson sections or an object with a
`sections` list. The drafted exercise list is printed as JSON so it can
be pasted into an assignment payload.
"""
import sys
import argparse
import json
import pathlib
# Ensure `backend/` is on sys.path so `tutordesk` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from pydantic import TypeAdapter
from typing import List
from tutordesk.schemas import ExerciseIn
from tutordesk.utils.auto_draft import auto_draft_from_lesson


def _load_sections(path: pathlib.Path):
    data = json.loads(path.read_text(encoding='utf-8'))
    if isinstance(data, dict):
        return data.get('sections') or []
    return data


def main(lesson_path: pathlib.Path, existing_path: pathlib.Path = None) -> int:
    """Print existing + drafted exercises; return a process exit code."""
    if not lesson_path.exists():
        print(f'Lesson file not found: {lesson_path}', file=sys.stderr)
        return 1
    existing = []
    if existing_path is not None:
        raw = json.loads(existing_path.read_text(encoding='utf-8'))
        existing = TypeAdapter(List[ExerciseIn]).validate_python(raw)
    exercises = auto_draft_from_lesson(_load_sections(lesson_path), existing)
    print(json.dumps([ex.model_dump() for ex in exercises], indent=2, ensure_ascii=False))
    print(f'Drafted {len(exercises) - len(existing)} exercise(s)', file=sys.stderr)
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('lesson', type=pathlib.Path, help='JSON file with lesson sections')
    parser.add_argument('--existing', type=pathlib.Path, help='JSON list of already authored exercises')
    args = parser.parse_args()
    sys.exit(main(args.lesson, args.existing))
