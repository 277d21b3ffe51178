from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Request bodies (camelCase on the wire) ---

class LeadSubmission(BaseModel):
    """
    Contact details captured at the end of the game plus the completion metrics.
    Required fields are checked in the route so the API can answer with 400.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    completion_time: Optional[int] = Field(default=None, alias="completionTime")
    levels_completed: Optional[int] = Field(default=None, alias="levelsCompleted")
    hints_used: Optional[int] = Field(default=None, alias="hintsUsed")
    total_attempts: Optional[int] = Field(default=None, alias="totalAttempts")
    source: Optional[str] = None
    event: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class ScoreBreakdownIn(BaseModel):
    level_points: Optional[int] = Field(default=None, alias="levelPoints")
    answer_points: Optional[int] = Field(default=None, alias="answerPoints")
    hint_penalty: Optional[int] = Field(default=None, alias="hintPenalty")
    bonus_points: Optional[int] = Field(default=None, alias="bonusPoints")
    level12_bonus: Optional[int] = Field(default=None, alias="level12Bonus")

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class ScoreSubmission(BaseModel):
    """Full score snapshot for one player, sent wholesale on every sync."""
    player_name: Optional[str] = Field(default=None, alias="playerName")
    email: Optional[str] = None
    score: Optional[int] = None
    levels_completed: Optional[int] = Field(default=None, alias="levelsCompleted")
    current_level: Optional[int] = Field(default=None, alias="currentLevel")
    hints_used: Optional[int] = Field(default=None, alias="hintsUsed")
    total_attempts: Optional[int] = Field(default=None, alias="totalAttempts")
    completion_time: Optional[int] = Field(default=None, alias="completionTime")
    is_complete: Optional[bool] = Field(default=None, alias="isComplete")
    score_breakdown: Optional[ScoreBreakdownIn] = Field(default=None, alias="scoreBreakdown")
    # Play-through id plus a counter that only increases within it
    game_id: Optional[str] = Field(default=None, alias="gameId")
    sync_version: Optional[int] = Field(default=None, alias="syncVersion")

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
