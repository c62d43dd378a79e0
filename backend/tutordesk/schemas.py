"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Authored exercises and lesson sections
are tagged unions discriminated on their `type` field.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exercises import ExerciseType, encode_correct_answer


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class StudentIn(BaseModel):
    """Payload to register one of the tutor's students."""
    full_name: str = Field(min_length=1)
    email: Optional[str] = None
    status: Literal['active', 'trial', 'inactive'] = 'active'
    auth_username: Optional[str] = None


# --- exercises -------------------------------------------------------------

class _ExerciseBase(BaseModel):
    question: str = ""
    points: int = Field(default=1, ge=1)

    def stored_answer(self) -> str:
        return encode_correct_answer(ExerciseType(self.type), self.correct_answer)

    def stored_options(self) -> Optional[List[str]]:
        return None


class MultipleChoiceIn(_ExerciseBase):
    type: Literal['multiple_choice'] = 'multiple_choice'
    options: List[str] = Field(min_length=2)
    correct_answer: str

    @model_validator(mode='after')
    def _answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError('correct_answer must be one of options')
        return self

    def stored_options(self) -> Optional[List[str]]:
        return list(self.options)


class FillBlankIn(_ExerciseBase):
    type: Literal['fill_blank'] = 'fill_blank'
    correct_answer: str


class TrueFalseIn(_ExerciseBase):
    type: Literal['true_false'] = 'true_false'
    correct_answer: Union[bool, Literal['true', 'false']] = 'true'


class MatchingIn(_ExerciseBase):
    type: Literal['matching'] = 'matching'
    correct_answer: Union[Dict[str, str], str]

    @field_validator('correct_answer')
    @classmethod
    def _pairs_decode(cls, value):
        encode_correct_answer(ExerciseType.MATCHING, value)
        return value


class FreeTextIn(_ExerciseBase):
    type: Literal['free_text'] = 'free_text'
    correct_answer: Optional[str] = None


class PronunciationIn(_ExerciseBase):
    type: Literal['pronunciation'] = 'pronunciation'
    correct_answer: str


ExerciseIn = Annotated[
    Union[MultipleChoiceIn, FillBlankIn, TrueFalseIn, MatchingIn, FreeTextIn, PronunciationIn],
    Field(discriminator='type'),
]


# --- lesson sections (auto-draft input) ------------------------------------

class VocabularyWord(BaseModel):
    word: str
    translation: str


class GrammarExample(BaseModel):
    sentence: str


class _LessonSectionBase(BaseModel):
    @model_validator(mode='before')
    @classmethod
    def _unwrap_content(cls, data):
        # stored lesson rows keep the payload under `content`
        if isinstance(data, dict) and isinstance(data.get('content'), dict):
            return {**data['content'], 'type': data.get('type')}
        return data


class VocabularySectionIn(_LessonSectionBase):
    type: Literal['vocabulary'] = 'vocabulary'
    words: List[VocabularyWord] = []


class GrammarSectionIn(_LessonSectionBase):
    type: Literal['grammar'] = 'grammar'
    examples: List[GrammarExample] = []


LessonSectionIn = Annotated[
    Union[VocabularySectionIn, GrammarSectionIn],
    Field(discriminator='type'),
]


class AutoDraftIn(BaseModel):
    """Lesson sections to draft from plus the exercises already authored.

    Sections are accepted loosely (any JSON value); the generator skips
    whatever it cannot use.
    """
    sections: List[Any] = []
    existing: List[ExerciseIn] = []


# --- assignments -----------------------------------------------------------

class AssignmentIn(BaseModel):
    """Full authoring payload: metadata, exercise list and audience."""
    title: str
    description: Optional[str] = None
    lesson_id: Optional[int] = None
    audience: Literal['broadcast', 'restricted'] = 'broadcast'
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    due_date: Optional[datetime] = None
    available_until: Optional[datetime] = None
    is_active: bool = True
    exercises: List[ExerciseIn] = []
    recipient_ids: List[int] = []


class SubmitIn(BaseModel):
    """Public submission body.

    Required fields are checked by the submission service so that their
    absence is reported as a `validation_error` kind.
    """
    model_config = ConfigDict(populate_by_name=True)

    token: str = ""
    student_name: str = Field(default="", alias='studentName')
    student_email: Optional[str] = Field(default=None, alias='studentEmail')
    answers: Dict[str, str] = {}
    started_at: Optional[Any] = Field(default=None, alias='startedAt')


class SubmitOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: int
    max_score: int = Field(serialization_alias='maxScore')
    is_guest_submission: bool = Field(serialization_alias='isGuestSubmission')
    resolved_student_name: Optional[str] = Field(default=None, serialization_alias='resolvedStudentName')
