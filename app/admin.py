import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import admin_token, require_admin
from .database import get_db
from .models import Lead, Score
from .schemas import LoginRequest
from .sessions import AdminSession, SessionStore, check_credentials, credentials_configured, get_session_store

router = APIRouter(prefix="/api/admin")
logger = logging.getLogger("uvicorn")


def _parse_id(raw: str, label: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")


def _pagination(total: int, limit: int, offset: int) -> dict:
    return {"total": total, "limit": limit, "offset": offset}


# --- Session ---

@router.post("/login")
async def login(data: LoginRequest, store: SessionStore = Depends(get_session_store)):
    if not credentials_configured():
        raise HTTPException(status_code=500, detail="Admin credentials not configured on server")

    if not check_credentials(data.username, data.password):
        logger.warning(f"Failed admin login for {data.username!r}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = store.create(data.username)
    logger.info(f"Admin login successful: {data.username}")

    return {
        "success": True,
        "token": token,
        "message": "Login successful",
    }


@router.post("/logout")
async def logout(
        token: Optional[str] = Depends(admin_token),
        store: SessionStore = Depends(get_session_store),
    ):
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    # Revoking an unknown or expired token is not an error
    store.revoke(token)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/verify")
async def verify(session: AdminSession = Depends(require_admin)):
    return {"success": True, "message": "Session valid", "username": session.username}


# --- Leaderboard management ---

@router.get("/scores", dependencies=[Depends(require_admin)])
async def list_scores(
        limit: int = Query(100, ge=0),
        offset: int = Query(0, ge=0),
        db: AsyncSession = Depends(get_db)
    ):
    query = (
        select(Score)
        .order_by(desc(Score.score), Score.completion_time.asc())
        .offset(offset)
        .limit(limit)
    )

    try:
        entries = (await db.execute(query)).scalars().all()
        total = (await db.execute(select(func.count()).select_from(Score))).scalar_one()
    except SQLAlchemyError:
        logger.exception("Error fetching scores")
        raise HTTPException(status_code=500, detail="Failed to fetch scores")

    return {
        "success": True,
        "data": [entry.to_dict() for entry in entries],
        "pagination": _pagination(total, limit, offset),
    }


@router.delete("/scores/{score_id}", dependencies=[Depends(require_admin)])
async def delete_score(score_id: str, db: AsyncSession = Depends(get_db)):
    score_id = _parse_id(score_id, "score")

    try:
        result = await db.execute(delete(Score).where(Score.id == score_id))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error deleting score")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete score")

    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail="Score not found")

    logger.info(f"Admin deleted score: ID {score_id}")
    return {"success": True, "message": "Score deleted successfully"}


@router.delete("/scores", dependencies=[Depends(require_admin)])
async def clear_scores(db: AsyncSession = Depends(get_db)):
    try:
        result = await db.execute(delete(Score))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error clearing leaderboard")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to clear leaderboard")

    deleted = result.rowcount
    logger.info(f"Admin cleared leaderboard: {deleted} entries deleted")

    return {
        "success": True,
        "message": f"Leaderboard cleared. {deleted} entries deleted.",
        "deletedCount": deleted,
    }


# --- Leads management ---

@router.get("/leads", dependencies=[Depends(require_admin)])
async def list_leads(
        limit: int = Query(100, ge=0),
        offset: int = Query(0, ge=0),
        db: AsyncSession = Depends(get_db)
    ):
    query = select(Lead).order_by(desc(Lead.created_at), desc(Lead.id)).offset(offset).limit(limit)

    try:
        leads = (await db.execute(query)).scalars().all()
        total = (await db.execute(select(func.count()).select_from(Lead))).scalar_one()
    except SQLAlchemyError:
        logger.exception("Error fetching leads")
        raise HTTPException(status_code=500, detail="Failed to fetch leads")

    return {
        "success": True,
        "data": [lead.to_dict() for lead in leads],
        "pagination": _pagination(total, limit, offset),
    }


@router.delete("/leads/{lead_id}", dependencies=[Depends(require_admin)])
async def delete_lead(lead_id: str, db: AsyncSession = Depends(get_db)):
    lead_id = _parse_id(lead_id, "lead")

    try:
        result = await db.execute(delete(Lead).where(Lead.id == lead_id))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error deleting lead")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete lead")

    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail="Lead not found")

    logger.info(f"Admin deleted lead: ID {lead_id}")
    return {"success": True, "message": "Lead deleted successfully"}


@router.delete("/leads", dependencies=[Depends(require_admin)])
async def clear_leads(db: AsyncSession = Depends(get_db)):
    try:
        result = await db.execute(delete(Lead))
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error clearing leads")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to clear leads")

    deleted = result.rowcount
    logger.info(f"Admin cleared leads: {deleted} entries deleted")

    return {
        "success": True,
        "message": f"All leads cleared. {deleted} entries deleted.",
        "deletedCount": deleted,
    }


# --- Stats ---

@router.get("/stats", dependencies=[Depends(require_admin)])
async def admin_stats(db: AsyncSession = Depends(get_db)):
    try:
        total_leads = (await db.execute(select(func.count()).select_from(Lead))).scalar_one()
        total_scores = (await db.execute(select(func.count()).select_from(Score))).scalar_one()
        completed = (await db.execute(
            select(func.count()).select_from(Score).where(Score.is_complete.is_(True))
        )).scalar_one()
    except SQLAlchemyError:
        logger.exception("Error fetching stats")
        raise HTTPException(status_code=500, detail="Failed to fetch stats")

    return {
        "success": True,
        "data": {
            "totalLeads": total_leads,
            "totalScores": total_scores,
            "completedGames": completed,
        },
    }
