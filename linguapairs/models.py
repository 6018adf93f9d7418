"""
LinguaPairs Backend - Shared Models and Schemas
Pydantic models for data validation and serialization
"""

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, ValidationInfo
from pydantic_core import PydanticCustomError
from email_validator import validate_email, EmailNotValidError
from typing import Optional, List, Literal, Any, Dict
from typing_extensions import Annotated
from uuid import UUID
from enum import Enum
from linguapairs.constants import (
    CHALLENGE_MAX_ANSWERS,
    CHALLENGE_MAX_ROUND_TIMES,
    CHALLENGE_MAX_TIME_MS,
    PAIR_TERM_MAX_LENGTH,
)


class Visibility(str, Enum):
    """Who can read a deck"""
    PRIVATE = "private"
    PUBLIC = "public"
    UNLISTED = "unlisted"


class PairType(str, Enum):
    WORDS = "words"
    PHRASES = "phrases"
    MINI_PHRASES = "mini-phrases"


class Register(str, Enum):
    NEUTRAL = "neutral"
    INFORMAL = "informal"
    FORMAL = "formal"


class GenerationContentType(str, Enum):
    AUTO = "auto"
    WORDS = "words"
    PHRASES = "phrases"
    MINI_PHRASES = "mini-phrases"


TopicId = Literal[
    "travel", "business", "food", "technology", "health", "education", "shopping",
    "family", "hobbies", "sports", "nature", "culture", "emotions", "time", "weather",
    "transport", "communication", "home", "work", "emergency",
]


# Authentication Models

def _check_email(value: str) -> str:
    value = value.strip()
    if not value:
        raise PydanticCustomError("email_required", "Adres e-mail jest wymagany")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email_invalid", "Podaj poprawny adres e-mail")
    return value


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise PydanticCustomError("password_too_short", "Hasło musi mieć co najmniej 8 znaków")
    if not any(ch.isascii() and ch.isalpha() for ch in value):
        raise PydanticCustomError("password_no_letter", "Hasło musi zawierać co najmniej jedną literę")
    if not any(ch.isdigit() for ch in value):
        raise PydanticCustomError("password_no_digit", "Hasło musi zawierać co najmniej jedną cyfrę")
    return value


class EmailRequest(BaseModel):
    """Forgot-password and resend-confirmation body"""
    email: str = Field("", validate_default=True)

    @field_validator("email")
    @classmethod
    def email_valid(cls, value: str) -> str:
        return _check_email(value)


class LoginRequest(EmailRequest):
    """Login request model"""
    password: str = Field("", validate_default=True)

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("password_required", "Hasło jest wymagane")
        return value


class RegisterRequest(EmailRequest):
    """Registration request model"""
    password: str = Field("", validate_default=True)

    @field_validator("password")
    @classmethod
    def password_strong(cls, value: str) -> str:
        return _check_password_strength(value)


class ResetPasswordRequest(BaseModel):
    """New password after following a reset link"""
    password: str = Field("", validate_default=True)

    @field_validator("password")
    @classmethod
    def password_strong(cls, value: str) -> str:
        return _check_password_strength(value)


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None


# Language Models

class LanguageRef(BaseModel):
    id: str
    code: str
    name: str
    flag_emoji: Optional[str] = None


class Language(LanguageRef):
    name_native: Optional[str] = None
    sort_order: Optional[int] = None


class LanguagesList(BaseModel):
    languages: List[Language]
    count: int


# Deck Models

class DeckBase(BaseModel):
    """Base deck model"""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)


class DeckCreate(DeckBase):
    """Deck creation model"""
    lang_a: UUID
    lang_b: UUID
    visibility: Visibility = Visibility.PRIVATE

    @field_validator("lang_b")
    @classmethod
    def languages_differ(cls, value: UUID, info: ValidationInfo) -> UUID:
        if info.data.get("lang_a") == value:
            raise PydanticCustomError("same_language", "Source and target languages must be different")
        return value


class DeckUpdate(BaseModel):
    """Deck update model"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    visibility: Optional[Visibility] = None


class DeckOwner(BaseModel):
    id: str
    username: Optional[str] = None


class DeckDetail(BaseModel):
    """Deck model with resolved languages and owner"""
    id: str
    owner_user_id: str
    owner: DeckOwner
    title: str
    description: Optional[str] = None
    lang_a: LanguageRef
    lang_b: LanguageRef
    visibility: Visibility
    pairs_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Pagination(BaseModel):
    page: int
    page_size: int
    limit: int
    total: int
    total_pages: int


class DecksList(BaseModel):
    decks: List[DeckDetail]
    pagination: Pagination


# Pair Models

class Pair(BaseModel):
    """Pair model"""
    id: str
    deck_id: str
    term_a: str
    term_b: str
    added_at: Optional[str] = None
    updated_at: Optional[str] = None
    flagged_by_me: Optional[bool] = None


class PairsList(BaseModel):
    pairs: List[Pair]
    pagination: Pagination


class FlagPairRequest(BaseModel):
    reason: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=500)]


class PairFlag(BaseModel):
    id: str
    pair_id: str
    flagged_by: str
    reason: str
    flagged_at: Optional[str] = None


# Challenge Models

class ChallengeResultCreate(BaseModel):
    """Result of a timed challenge run by an authenticated user"""
    deck_id: UUID
    total_time_ms: int = Field(..., ge=0, le=CHALLENGE_MAX_TIME_MS)
    correct: int = Field(..., ge=0, le=CHALLENGE_MAX_ANSWERS)
    incorrect: int = Field(..., ge=0, le=CHALLENGE_MAX_ANSWERS)
    version: Optional[str] = Field(None, min_length=1, max_length=64)
    round_times_ms: Optional[List[Annotated[int, Field(ge=0)]]] = Field(None, max_length=CHALLENGE_MAX_ROUND_TIMES)


class ChallengeResult(BaseModel):
    id: str
    deck_id: str
    user_id: str
    total_time_ms: int
    correct: int
    incorrect: int
    version: Optional[str] = None
    round_times_ms: Optional[List[int]] = None
    created_at: Optional[str] = None


class LeaderboardEntry(BaseModel):
    id: str
    deck_id: str
    user_id: str
    total_time_ms: int
    correct: int
    incorrect: int
    created_at: Optional[str] = None
    player_name: str
    is_current_user: bool = False


class Leaderboard(BaseModel):
    deck_id: str
    entries: List[LeaderboardEntry]
    my_best: Optional[LeaderboardEntry] = None


class ChallengePairs(BaseModel):
    deck_id: str
    total_available: int
    required_pairs: int
    rounds: int
    pairs_per_round: int
    pairs: List[Pair]


class DemoResultCreate(BaseModel):
    """Anonymous challenge demo result"""
    guest_id: UUID
    guest_name: str = Field(..., min_length=1, max_length=100)
    total_time_ms: int = Field(..., ge=0)
    incorrect: int = Field(..., ge=0)


class DemoResult(BaseModel):
    id: str
    guest_id: str
    guest_name: str
    total_time_ms: int
    incorrect: int
    created_at: Optional[str] = None


# Generation Models

class GenerateBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deck_id: UUID
    content_type: GenerationContentType = GenerationContentType.AUTO
    register_: Register = Field(Register.NEUTRAL, alias="register")
    exclude_pairs: List[UUID] = Field(default_factory=list)


class GenerateFromTopicRequest(GenerateBase):
    topic_id: TopicId


class GenerateFromTextRequest(GenerateBase):
    text: str = Field(..., min_length=1, max_length=5000)


class GeneratedPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    term_a: str = Field(..., max_length=PAIR_TERM_MAX_LENGTH)
    term_b: str = Field(..., max_length=PAIR_TERM_MAX_LENGTH)
    type: PairType
    register_: Register = Field(..., alias="register")
    source: str = "ai_generated"


class Quota(BaseModel):
    daily_limit: int
    used_today: int
    remaining: int
    reset_at: str


class GenerationResponse(BaseModel):
    generation_id: str
    deck_id: str
    pairs: List[GeneratedPair]
    pairs_generated: int
    metadata: Dict[str, Any]
    quota: Quota


class ActiveGeneration(BaseModel):
    id: str
    status: str
    deck_id: str
    pairs_requested: int
    created_at: Optional[str] = None
    started_at: Optional[str] = None
