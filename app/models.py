from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)  # Not unique, a player may submit twice
    company = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=False)
    completion_time = Column(Integer, nullable=False, default=0)  # seconds
    levels_completed = Column(Integer, nullable=False, default=0)
    hints_used = Column(Integer, nullable=False, default=0)
    total_attempts = Column(Integer, nullable=False, default=0)
    source = Column(String(20), nullable=False, default="web", index=True)  # tradeshow | web
    event = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "role": self.role,
            "phone": self.phone,
            "completedAt": self.completed_at,
            "completionTime": self.completion_time,
            "levelsCompleted": self.levels_completed,
            "hintsUsed": self.hints_used,
            "totalAttempts": self.total_attempts,
            "source": self.source,
            "event": self.event,
            "createdAt": self.created_at,
        }

class Score(Base):
    __tablename__ = "scores"

    id = Column(Integer, primary_key=True, index=True)
    player_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)  # Upsert key
    score = Column(Integer, nullable=False, default=0)
    levels_completed = Column(Integer, nullable=False, default=0)
    current_level = Column(Integer, nullable=False, default=1)
    hints_used = Column(Integer, nullable=False, default=0)
    total_attempts = Column(Integer, nullable=False, default=0)
    completion_time = Column(Integer, nullable=False, default=0)  # seconds, tie breaker
    is_complete = Column(Boolean, nullable=False, default=False, index=True)

    # Informational decomposition of score
    level_points = Column(Integer, nullable=False, default=0)
    answer_points = Column(Integer, nullable=False, default=0)
    hint_penalty = Column(Integer, nullable=False, default=0)
    bonus_points = Column(Integer, nullable=False, default=0)
    level12_bonus = Column(Integer, nullable=False, default=0)

    # Client-side logical clock per play-through, stale snapshots of the same game are ignored
    game_id = Column(String(64), nullable=True)
    sync_version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now(), nullable=False)

    # Composite index for leaderboard queries
    __table_args__ = (
        Index('idx_scores_ranking', 'score', 'completion_time'),
    )

    def breakdown(self):
        return {
            "levelPoints": self.level_points,
            "answerPoints": self.answer_points,
            "hintPenalty": self.hint_penalty,
            "bonusPoints": self.bonus_points,
            "level12Bonus": self.level12_bonus,
        }

    def to_dict(self, include_breakdown=False):
        data = {
            "id": self.id,
            "playerName": self.player_name,
            "email": self.email,
            "score": self.score,
            "levelsCompleted": self.levels_completed,
            "currentLevel": self.current_level,
            "hintsUsed": self.hints_used,
            "totalAttempts": self.total_attempts,
            "completionTime": self.completion_time,
            "isComplete": self.is_complete,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if include_breakdown:
            data["scoreBreakdown"] = self.breakdown()
        return data
