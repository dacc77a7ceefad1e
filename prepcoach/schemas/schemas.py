"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Any, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class InterviewType(str, Enum):
    behavioral = "behavioral"
    technical = "technical"
    mixed = "mixed"


class QuestionType(str, Enum):
    behavioral = "behavioral"
    technical = "technical"
    situational = "situational"


class EstimatedDifficulty(str, Enum):
    challenging = "challenging"
    appropriate = "appropriate"
    comfortable = "comfortable"


class SessionStatus(str, Enum):
    setup = "setup"
    active = "active"
    paused = "paused"
    completed = "completed"


class ScheduleStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class LevelAssessment(str, Enum):
    junior = "junior"
    mid = "mid"
    senior = "senior"


class TrendDirection(str, Enum):
    improving = "improving"
    declining = "declining"
    stable = "stable"


# ============================================================
# SHARED
# ============================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class InterviewQuestion(BaseModel):
    id: str
    type: QuestionType
    difficulty: Difficulty
    question: str
    follow_up: List[str] = []
    time_limit: int = 180
    category: Optional[str] = None


# ============================================================
# SCORING SCHEMAS
# ============================================================

class ScoreBreakdown(BaseModel):
    technical_accuracy: float
    communication_skills: float
    problem_solving: float
    confidence: float
    relevance: float
    clarity: float
    structure: float
    examples: float


class ImprovementPlan(BaseModel):
    short_term: List[str] = []
    long_term: List[str] = []


class DetailedScore(BaseModel):
    overall_score: int
    breakdown: ScoreBreakdown
    level_assessment: LevelAssessment
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []
    improvement_plan: ImprovementPlan


class ScoringWeights(BaseModel):
    technical_accuracy: float = Field(..., ge=0, le=1)
    communication_skills: float = Field(..., ge=0, le=1)
    problem_solving: float = Field(..., ge=0, le=1)
    confidence: float = Field(..., ge=0, le=1)
    relevance: float = Field(..., ge=0, le=1)
    clarity: float = Field(..., ge=0, le=1)
    structure: float = Field(..., ge=0, le=1)
    examples: float = Field(..., ge=0, le=1)

    @model_validator(mode="after")
    def check_total(self):
        if sum(self.model_dump().values()) <= 0:
            raise ValueError("At least one weight must be positive")
        return self


class ScoringWeightsUpdate(BaseModel):
    """Either explicit weights or a preset name."""
    weights: Optional[ScoringWeights] = None
    preset: Optional[str] = None

    @model_validator(mode="after")
    def one_of(self):
        if (self.weights is None) == (self.preset is None):
            raise ValueError("Provide exactly one of 'weights' or 'preset'")
        return self


class ScoringWeightsResponse(BaseModel):
    weights: ScoringWeights
    preset_name: Optional[str] = None
    is_default: bool


class ScoringPresetsResponse(BaseModel):
    presets: Dict[str, ScoringWeights]


# ============================================================
# ADAPTIVE RECOMMENDATION SCHEMAS
# ============================================================

class RecommendationRationale(BaseModel):
    primary: str
    supporting: List[str] = []


class AlternativeOption(BaseModel):
    difficulty: Difficulty
    type: InterviewType
    reason: str


class AdaptiveRecommendation(BaseModel):
    recommended_difficulty: Difficulty
    recommended_type: InterviewType
    confidence: float
    rationale: RecommendationRationale
    alternative_options: List[AlternativeOption] = []
    focus_areas: List[str] = []
    estimated_difficulty: EstimatedDifficulty


class UserChoice(BaseModel):
    difficulty: Difficulty
    type: InterviewType


class AdaptiveConfigResponse(BaseModel):
    success: bool = True
    recommendation: AdaptiveRecommendation


class AdaptiveChoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    user_choice: Optional[UserChoice] = Field(None, alias="userChoice")
    session_id: Optional[str] = Field(None, alias="sessionId")


class AdaptiveChoiceResponse(BaseModel):
    success: bool = True
    recommendation: AdaptiveRecommendation
    recorded: bool
    was_recommendation_followed: Optional[bool] = None


class SessionOutcome(BaseModel):
    overall_score: float
    completion_rate: float


class ChoiceRecord(BaseModel):
    session_id: Optional[str] = None
    timestamp: datetime
    recommendation: AdaptiveRecommendation
    user_choice: UserChoice
    was_recommendation_followed: bool
    session_outcome: Optional[SessionOutcome] = None


class ChoiceHistoryResponse(BaseModel):
    success: bool = True
    count: int
    data: List[ChoiceRecord]


# ============================================================
# PERFORMANCE SCHEMAS
# ============================================================

class PerformanceTrend(BaseModel):
    metric: str
    direction: TrendDirection
    change_percentage: float
    recent_score: float
    previous_score: float


class TypePerformance(BaseModel):
    average_score: float
    session_count: int
    best_score: float

    @field_validator("average_score")
    @classmethod
    def round_average(cls, v):
        return round(v, 1)


class UserPerformanceProfile(BaseModel):
    user_id: str
    total_sessions: int
    average_score: float
    strengths: List[str] = []
    weaknesses: List[str] = []
    preferred_difficulty: Difficulty
    performance_by_type: Dict[str, TypePerformance]
    recent_trends: List[PerformanceTrend] = []
    last_updated: datetime

    # The service keeps raw means for the adaptive rules
    @field_validator("average_score")
    @classmethod
    def round_average(cls, v):
        return round(v, 1)


class BenchmarkData(BaseModel):
    difficulty: Difficulty
    interview_type: InterviewType
    average_overall_score: float
    average_breakdown: ScoreBreakdown
    percentiles: Dict[str, float]
    sample_size: int


class PerformanceSummary(BaseModel):
    profile: UserPerformanceProfile
    benchmark: BenchmarkData
    percentile_band: Optional[str] = None
    recent_sessions: List[Dict[str, Any]] = []


class RecommendationAccuracy(BaseModel):
    overall_accuracy: float
    difficulty_accuracy: float
    type_accuracy: float
    total_recommendations: int


class PerformanceGetResponse(BaseModel):
    success: bool = True
    performance_summary: PerformanceSummary
    recommendation_accuracy: RecommendationAccuracy


class SessionCompleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    role: Optional[str] = None
    use_ai_feedback: bool = Field(False, alias="useAiFeedback")


class SessionStats(BaseModel):
    total_questions: int
    answered_questions: int
    average_response_time: float
    completion_rate: float


class SessionCompleteResponse(BaseModel):
    success: bool = True
    detailed_score: DetailedScore
    session_stats: SessionStats


# ============================================================
# INTERVIEW SESSION SCHEMAS
# ============================================================

class SessionCreateRequest(BaseModel):
    type: InterviewType = InterviewType.mixed
    difficulty: Difficulty = Difficulty.medium
    duration: int = Field(30, gt=0, le=240, description="Minutes")
    role: Optional[str] = None
    template_id: Optional[str] = None
    question_set_ids: List[str] = []
    include_default_questions: bool = False
    custom_questions: List[InterviewQuestion] = []


class AdaptiveSessionRequest(BaseModel):
    duration: int = Field(30, gt=0, le=240)
    role: Optional[str] = None
    template_id: Optional[str] = None
    question_set_ids: List[str] = []
    include_default_questions: bool = False
    user_choice: Optional[UserChoice] = None


class SessionResponseIn(BaseModel):
    question_id: str = Field(..., min_length=1)
    response: str = ""
    duration: float = Field(0, ge=0, description="Seconds spent answering")
    audio_url: Optional[str] = None


class SessionStatusUpdate(BaseModel):
    status: SessionStatus


class SessionAnswer(BaseModel):
    question_id: str
    response: str
    duration: float
    audio_url: Optional[str] = None
    timestamp: datetime


class InterviewSessionResponse(BaseModel):
    session_id: str
    user_id: str
    type: InterviewType
    difficulty: Difficulty
    duration: int
    role: Optional[str] = None
    template_id: Optional[str] = None
    questions: List[InterviewQuestion]
    current_question_index: int = 0
    status: SessionStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    question_sources: List[str] = []
    responses: List[SessionAnswer] = []
    created_at: datetime
    updated_at: datetime


class SessionListResponse(BaseModel):
    data: List[InterviewSessionResponse]
    count: int


class AdaptiveSessionResponse(BaseModel):
    session: InterviewSessionResponse
    recommendation: AdaptiveRecommendation
    used_recommendation: bool


class SessionExportResponse(BaseModel):
    session: InterviewSessionResponse
    stats: SessionStats
    exported_at: datetime


class FollowUpRequest(BaseModel):
    question_id: str = Field(..., min_length=1)


class FollowUpResponse(BaseModel):
    question_id: str
    follow_up: Optional[str] = None
    source: str


# ============================================================
# QUESTION BANK SCHEMAS
# ============================================================

class QuestionIn(BaseModel):
    type: QuestionType = QuestionType.behavioral
    difficulty: Difficulty = Difficulty.medium
    question: str = Field(..., min_length=1)
    follow_up: List[str] = []
    tags: List[str] = []
    time_limit: int = Field(180, gt=0)

    @field_validator("question")
    @classmethod
    def strip_question(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Question text cannot be empty")
        return v


class QuestionUpdate(BaseModel):
    type: Optional[QuestionType] = None
    difficulty: Optional[Difficulty] = None
    question: Optional[str] = Field(None, min_length=1)
    follow_up: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    time_limit: Optional[int] = Field(None, gt=0)


class QuestionResponse(BaseModel):
    id: str
    question_bank_id: str
    type: QuestionType
    difficulty: Difficulty
    question: str
    follow_up: List[str] = []
    tags: List[str] = []
    time_limit: int
    created_at: datetime
    updated_at: datetime


class QuestionBankCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_public: bool = False


class QuestionBankUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_public: Optional[bool] = None


class QuestionBankResponse(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    is_public: bool
    question_count: int = 0
    created_at: datetime
    updated_at: datetime


class QuestionBankDetail(QuestionBankResponse):
    questions: List[QuestionResponse] = []


class QuestionBankListResponse(BaseModel):
    data: List[QuestionBankResponse]
    count: int


class BulkQuestionsRequest(BaseModel):
    questions: List[QuestionIn] = Field(..., min_length=1)


class QuestionImportResponse(BaseModel):
    success: bool = True
    imported_count: int
    skipped_count: int
    questions: List[QuestionResponse]


# ============================================================
# TEMPLATE SCHEMAS
# ============================================================

class InterviewTemplate(BaseModel):
    id: str
    name: str
    description: str
    role: str
    industry: Optional[str] = None
    category: InterviewType
    difficulty: Difficulty
    duration: int
    seniority: str
    questions: List[InterviewQuestion]


class TemplateListResponse(BaseModel):
    data: List[InterviewTemplate]
    count: int


# ============================================================
# SCHEDULE SCHEMAS
# ============================================================

class ScheduleSessionConfig(BaseModel):
    template_id: Optional[str] = None
    role: Optional[str] = None
    type: InterviewType
    difficulty: Difficulty
    duration: int = Field(..., gt=0)
    custom_questions: Optional[List[InterviewQuestion]] = None


class ScheduleSessionConfigPatch(BaseModel):
    template_id: Optional[str] = None
    role: Optional[str] = None
    type: Optional[InterviewType] = None
    difficulty: Optional[Difficulty] = None
    duration: Optional[int] = Field(None, gt=0)
    custom_questions: Optional[List[InterviewQuestion]] = None


class ScheduleCreate(BaseModel):
    session_config: ScheduleSessionConfig
    start_time: datetime
    end_time: Optional[datetime] = None
    sync_to_calendar: bool = True

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleUpdate(BaseModel):
    session_config: Optional[ScheduleSessionConfigPatch] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[ScheduleStatus] = None
    sync_to_calendar: bool = False


class ScheduledSessionResponse(BaseModel):
    id: str
    user_id: str
    session_config: Dict[str, Any]
    start_time: datetime
    end_time: Optional[datetime] = None
    status: ScheduleStatus
    calendar_event_id: Optional[str] = None
    google_calendar_id: Optional[str] = None
    calendar_synced: bool = False
    created_at: datetime
    updated_at: datetime


class ScheduleItemResponse(BaseModel):
    data: ScheduledSessionResponse


class ScheduleListResponse(BaseModel):
    data: List[ScheduledSessionResponse]
    count: int


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobListing(BaseModel):
    id: Optional[str] = None
    external_id: str
    title: str
    company: str
    location: Optional[str] = None
    description: Optional[str] = None
    apply_url: Optional[str] = None
    salary_range: Optional[str] = None
    employment_type: Optional[str] = None
    role_keywords: List[str] = []
    industry: Optional[str] = None
    seniority_level: Optional[str] = None
    source: str = "jsearch"
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class JobSearchMeta(BaseModel):
    count: int
    duration_ms: int
    cached: bool
    params: Dict[str, Any]


class JobSearchResponse(BaseModel):
    success: bool = True
    data: List[JobListing]
    meta: JobSearchMeta


class JobCleanupResponse(BaseModel):
    success: bool = True
    deleted_count: int


# ============================================================
# AUTH / E-MAIL VERIFICATION SCHEMAS
# ============================================================

class SendVerificationRequest(BaseModel):
    email: EmailStr


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class VerifyEmailResponse(BaseModel):
    success: bool = True
    message: str
    email: str


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileResponse(BaseModel):
    user_id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    google_calendar_connected: bool = False
    google_calendar_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, pattern=r"^[A-Za-z0-9_]{3,30}$")
    full_name: Optional[str] = Field(None, max_length=200)
    avatar_url: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)


class UsernameAvailability(BaseModel):
    username: str
    available: bool


class CalendarConnectRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_in: int = Field(3600, gt=0, description="Seconds until access_token expires")
    email: Optional[str] = None


# ============================================================
# TEXT-TO-SPEECH SCHEMAS
# ============================================================

class TTSRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    voice_id: Optional[str] = Field(None, alias="voiceId")
