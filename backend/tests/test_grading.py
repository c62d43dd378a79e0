import json
from types import SimpleNamespace

import pytest

from tutordesk.grading import GradeResult, grade_submission, is_correct


def ex(id, type, correct_answer, points=1):
    return SimpleNamespace(id=id, type=type, correct_answer=correct_answer, points=points)


SCENARIO = [
    ex(1, 'fill_blank', 'goes', 1),
    ex(2, 'matching', json.dumps({'cat': 'gato'}), 2),
]


def test_scenario_full_marks():
    answers = {'1': 'Goes', '2': '{"cat":"gato"}'}
    assert grade_submission(SCENARIO, answers) == GradeResult(score=3, max_score=3)


def test_scenario_wrong_and_unanswered():
    assert grade_submission(SCENARIO, {'1': 'go'}) == GradeResult(score=0, max_score=3)


def test_max_score_counts_every_exercise_even_without_answers():
    exercises = [
        ex(1, 'free_text', 'ref', 4),
        ex(2, 'multiple_choice', 'b', 2),
        ex(3, 'pronunciation', 'hello', 3),
    ]
    assert grade_submission(exercises, {}).max_score == 9
    assert grade_submission([], {}) == GradeResult(score=0, max_score=0)


@pytest.mark.parametrize('given', [' Goes ', 'goes', 'GOES', '\tgoes\n'])
def test_fill_blank_ignores_case_and_surrounding_space(given):
    assert is_correct('fill_blank', given, 'goes')


def test_fill_blank_rejects_different_word():
    assert not is_correct('fill_blank', 'go', 'goes')


def test_matching_is_key_order_insensitive():
    expected = json.dumps({'cat': 'gato', 'dog': 'perro'})
    assert is_correct('matching', '{"dog":"perro","cat":"gato"}', expected)
    assert is_correct('matching', '{"cat":"gato","dog":"perro"}', expected)
    assert not is_correct('matching', '{"cat":"perro","dog":"gato"}', expected)
    assert not is_correct('matching', '{"cat":"gato"}', expected)


@pytest.mark.parametrize('bad', ['{not json', '', '[1, 2]', '"cat"', 'null'])
def test_malformed_matching_answer_scores_zero_without_raising(bad):
    exercises = [ex(1, 'matching', json.dumps({'cat': 'gato'}), 2), ex(2, 'fill_blank', 'goes', 1)]
    result = grade_submission(exercises, {'1': bad, '2': 'goes'})
    assert result == GradeResult(score=1, max_score=3)


@pytest.mark.parametrize('content', ['', 'reference answer', '{"weird": true}', 'x' * 5000])
def test_free_text_never_scores(content):
    result = grade_submission([ex(1, 'free_text', 'reference answer', 5)], {'1': content})
    assert result == GradeResult(score=0, max_score=5)


def test_exact_types_are_case_sensitive():
    assert is_correct('multiple_choice', 'Paris', 'Paris')
    assert not is_correct('multiple_choice', 'paris', 'Paris')
    assert is_correct('true_false', 'false', 'false')
    assert not is_correct('true_false', 'False', 'false')
    assert is_correct('pronunciation', 'thank you', 'thank you')
    assert not is_correct('pronunciation', 'thank you ', 'thank you')


def test_unknown_type_scores_zero():
    assert grade_submission([ex(1, 'essay', 'x', 2)], {'1': 'x'}) == GradeResult(score=0, max_score=2)


def test_grading_is_idempotent():
    answers = {'1': 'Goes', '2': 'oops'}
    first = grade_submission(SCENARIO, answers)
    assert grade_submission(SCENARIO, answers) == first
    assert answers == {'1': 'Goes', '2': 'oops'}
