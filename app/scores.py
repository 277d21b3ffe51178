import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import dialect_name, get_db
from .models import Score
from .ranking import DEFAULT_LEADERBOARD_LIMIT, count_scores, leaderboard, percentile, rank_for_score
from .schemas import ScoreSubmission

router = APIRouter(prefix="/api/scores")
logger = logging.getLogger("uvicorn")

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def snapshot_values(data: ScoreSubmission) -> dict:
    breakdown = data.score_breakdown
    return {
        "player_name": data.player_name,
        "email": data.email.strip().lower(),
        "score": max(0, data.score or 0),
        "levels_completed": data.levels_completed or 0,
        "current_level": data.current_level or 1,
        "hints_used": data.hints_used or 0,
        "total_attempts": data.total_attempts or 0,
        "completion_time": data.completion_time or 0,
        "is_complete": bool(data.is_complete),
        "level_points": (breakdown.level_points if breakdown else None) or 0,
        "answer_points": (breakdown.answer_points if breakdown else None) or 0,
        "hint_penalty": (breakdown.hint_penalty if breakdown else None) or 0,
        "bonus_points": (breakdown.bonus_points if breakdown else None) or 0,
        "level12_bonus": (breakdown.level12_bonus if breakdown else None) or 0,
        "game_id": data.game_id or None,
        "sync_version": data.sync_version or 0,
    }


async def upsert_score(db: AsyncSession, values: dict):
    """
    Insert or overwrite the row for values["email"] in one statement.

    Snapshots of the same play-through (equal game_id) are ordered by
    sync_version and an older one is not written. Snapshots without a game_id,
    or from a different play-through, always overwrite.

    Returns (id, stored score, applied).
    """
    insert = UPSERT_DIALECTS.get(dialect_name(db))
    if insert is None:
        raise RuntimeError(f"Score upsert not supported for dialect {dialect_name(db)}")

    stmt = insert(Score).values(**values)
    update_columns = {
        column: stmt.excluded[column]
        for column in values
        if column != "email"
    }
    update_columns["updated_at"] = func.now()

    stmt = stmt.on_conflict_do_update(
        index_elements=[Score.email],
        set_=update_columns,
        where=or_(
            Score.game_id.is_(None),
            stmt.excluded.game_id.is_(None),
            Score.game_id != stmt.excluded.game_id,
            Score.sync_version <= stmt.excluded.sync_version,
        ),
    ).returning(Score.id, Score.score)

    row = (await db.execute(stmt)).first()
    if row is not None:
        return row[0], row[1], True

    existing = (await db.execute(
        select(Score.id, Score.score).where(Score.email == values["email"])
    )).one()
    return existing[0], existing[1], False


@router.post("")
async def submit_score(data: ScoreSubmission, db: AsyncSession = Depends(get_db)):
    # Input validation
    if not data.player_name or not data.email:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: playerName and email are required",
        )

    values = snapshot_values(data)

    try:
        score_id, stored_score, applied = await upsert_score(db, values)
        await db.commit()
        rank = await rank_for_score(db, stored_score, complete_only=True)
    except SQLAlchemyError:
        logger.exception("Error submitting score")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to submit score")

    if applied:
        logger.info(
            f"Score updated: {values['player_name']} ({values['email']}) - "
            f"Level {values['current_level']}, {values['score']} points"
        )
    else:
        logger.info(f"Ignored stale score snapshot v{values['sync_version']} for {values['email']}")

    return {
        "success": True,
        "message": "Score updated successfully" if applied else "Newer score already recorded",
        "id": score_id,
        "rank": rank,
        "applied": applied,
    }


@router.get("/player/{email}")
async def get_player_score(email: str, db: AsyncSession = Depends(get_db)):
    query = select(Score).where(func.lower(Score.email) == email.strip().lower())

    try:
        entry = (await db.execute(query)).scalars().first()
    except SQLAlchemyError:
        logger.exception("Error fetching player score")
        raise HTTPException(status_code=500, detail="Failed to fetch player score")

    if entry is None:
        raise HTTPException(status_code=404, detail="Player not found")

    return {"success": True, "data": entry.to_dict(include_breakdown=True)}


@router.get("/leaderboard")
async def get_leaderboard(
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
        include_incomplete: bool = Query(False, alias="includeIncomplete"),
        db: AsyncSession = Depends(get_db)
    ):
    try:
        entries = await leaderboard(db, limit=limit, include_incomplete=include_incomplete)
    except SQLAlchemyError:
        logger.exception("Error fetching leaderboard")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")

    return {"success": True, "data": entries}


@router.get("/stats")
async def score_stats(db: AsyncSession = Depends(get_db)):
    stats_query = select(
        func.count(Score.id),
        func.max(Score.score),
        func.avg(Score.score),
        func.min(Score.completion_time),
        func.avg(Score.completion_time),
        func.sum(Score.hints_used),
        func.avg(Score.levels_completed),
    )
    top_query = (
        select(Score.player_name, Score.score)
        .order_by(desc(Score.score), Score.completion_time.asc())
        .limit(1)
    )

    try:
        total, highest, avg_score, fastest, avg_time, hints, avg_levels = (await db.execute(stats_query)).one()
        top = (await db.execute(top_query)).first()
    except SQLAlchemyError:
        logger.exception("Error fetching score stats")
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")

    return {
        "success": True,
        "data": {
            "totalGames": total,
            "highestScore": highest or 0,
            "averageScore": round(float(avg_score), 1) if avg_score is not None else 0,
            "fastestTime": fastest or 0,
            "avgCompletionTime": round(float(avg_time)) if avg_time is not None else 0,
            "totalHintsUsed": int(hints or 0),
            "avgLevelsCompleted": round(float(avg_levels), 1) if avg_levels is not None else 0,
            "topScorer": {"playerName": top[0], "score": top[1]} if top else None,
        },
    }


@router.get("/rank/{score}")
async def get_rank(score: str, db: AsyncSession = Depends(get_db)):
    try:
        score_value = int(score)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid score parameter")

    try:
        rank = await rank_for_score(db, score_value)
        total = await count_scores(db)
    except SQLAlchemyError:
        logger.exception("Error fetching rank")
        raise HTTPException(status_code=500, detail="Failed to fetch rank")

    return {
        "success": True,
        "data": {
            "rank": rank,
            "total": total,
            "percentile": percentile(rank, total),
        },
    }
