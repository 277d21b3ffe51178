import math
from typing import List

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Score

MAX_LEADERBOARD_LIMIT = 100
DEFAULT_LEADERBOARD_LIMIT = 10


def percentile(rank: int, total: int) -> int:
    """Share of the board at or below this rank. An empty board is the top percentile."""
    if total <= 0:
        return 100
    # Round half up
    return int(math.floor((1 - (rank - 1) / total) * 100 + 0.5))


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_LEADERBOARD_LIMIT))


async def rank_for_score(db: AsyncSession, score: int, complete_only: bool = False) -> int:
    """Competition rank: one plus the number of stored scores strictly higher."""
    query = select(func.count()).select_from(Score).where(Score.score > score)
    if complete_only:
        query = query.where(Score.is_complete.is_(True))
    higher = (await db.execute(query)).scalar_one()
    return higher + 1


async def count_scores(db: AsyncSession, complete_only: bool = False) -> int:
    query = select(func.count()).select_from(Score)
    if complete_only:
        query = query.where(Score.is_complete.is_(True))
    return (await db.execute(query)).scalar_one()


async def leaderboard(db: AsyncSession, limit: int = DEFAULT_LEADERBOARD_LIMIT, include_incomplete: bool = False) -> List[dict]:
    # Order by score (desc), then by time (asc) for same score
    ordering = (desc(Score.score), Score.completion_time.asc())
    rank_column = func.rank().over(order_by=ordering).label("rank")

    query = select(Score, rank_column)
    if not include_incomplete:
        query = query.where(Score.is_complete.is_(True))
    query = query.order_by(*ordering).limit(clamp_limit(limit))

    result = await db.execute(query)
    return [
        {
            "rank": int(rank),
            "playerName": entry.player_name,
            "score": entry.score,
            "levelsCompleted": entry.levels_completed,
            "currentLevel": entry.current_level,
            "hintsUsed": entry.hints_used,
            "completionTime": entry.completion_time,
            "isComplete": entry.is_complete,
            "createdAt": entry.created_at,
            "updatedAt": entry.updated_at,
        }
        for entry, rank in result.all()
    ]
