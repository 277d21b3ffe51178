import csv
import io
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import case, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import require_api_key
from .database import get_db
from .models import Lead
from .puzzles import is_valid_email
from .schemas import LeadSubmission

router = APIRouter(prefix="/api/leads", dependencies=[Depends(require_api_key)])
logger = logging.getLogger("uvicorn")

LEAD_SOURCES = ("tradeshow", "web")

CSV_HEADERS = [
    "ID", "Name", "Email", "Company", "Role", "Phone",
    "Completed At", "Completion Time (s)", "Levels Completed",
    "Hints Used", "Total Attempts", "Source", "Event", "Created At",
]


def _filtered(query, source: Optional[str], event: Optional[str]):
    if source:
        query = query.where(Lead.source == source)
    if event:
        query = query.where(Lead.event == event)
    return query


def leads_to_csv(leads) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADERS)

    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for lead in leads:
        writer.writerow([
            lead.id,
            lead.name,
            lead.email,
            lead.company,
            lead.role,
            lead.phone or "",
            lead.completed_at.isoformat() if lead.completed_at else "",
            lead.completion_time,
            lead.levels_completed,
            lead.hints_used,
            lead.total_attempts,
            lead.source,
            lead.event or "",
            lead.created_at.isoformat() if lead.created_at else "",
        ])

    return buffer.getvalue().rstrip("\n")


@router.post("", status_code=201)
async def submit_lead(data: LeadSubmission, db: AsyncSession = Depends(get_db)):
    # Input validation
    if not data.name or not data.email or not data.company:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: name, email, and company are required",
        )

    if not is_valid_email(data.email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    source = data.source or "web"
    if source not in LEAD_SOURCES:
        raise HTTPException(status_code=400, detail="Invalid source: expected tradeshow or web")

    lead = Lead(
        name=data.name,
        email=data.email,
        company=data.company,
        role=data.role or "",
        phone=data.phone or None,
        completed_at=data.completed_at or datetime.now(timezone.utc),
        completion_time=data.completion_time or 0,
        levels_completed=data.levels_completed or 0,
        hints_used=data.hints_used or 0,
        total_attempts=data.total_attempts or 0,
        source=source,
        event=data.event or None,
    )

    try:
        db.add(lead)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Error submitting lead")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to submit lead")

    logger.info(f"New lead submitted: {lead.email} (ID: {lead.id})")

    return {
        "success": True,
        "message": "Lead submitted successfully",
        "id": lead.id,
    }


@router.get("")
async def list_leads(
        source: Optional[str] = None,
        event: Optional[str] = None,
        limit: int = Query(100, ge=0),
        offset: int = Query(0, ge=0),
        db: AsyncSession = Depends(get_db)
    ):
    query = _filtered(select(Lead), source, event)
    query = query.order_by(desc(Lead.created_at), desc(Lead.id)).offset(offset).limit(limit)
    count_query = _filtered(select(func.count()).select_from(Lead), source, event)

    try:
        leads = (await db.execute(query)).scalars().all()
        total = (await db.execute(count_query)).scalar_one()
    except SQLAlchemyError:
        logger.exception("Error fetching leads")
        raise HTTPException(status_code=500, detail="Failed to fetch leads")

    return {
        "success": True,
        "data": [lead.to_dict() for lead in leads],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
        },
    }


@router.get("/export")
async def export_leads(
        source: Optional[str] = None,
        event: Optional[str] = None,
        db: AsyncSession = Depends(get_db)
    ):
    query = _filtered(select(Lead), source, event).order_by(desc(Lead.created_at), desc(Lead.id))

    try:
        leads = (await db.execute(query)).scalars().all()
    except SQLAlchemyError:
        logger.exception("Error exporting leads")
        raise HTTPException(status_code=500, detail="Failed to export leads")

    filename = f"leads_{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=leads_to_csv(leads),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/stats")
async def lead_stats(db: AsyncSession = Depends(get_db)):
    totals_query = select(
        func.count(Lead.id),
        func.coalesce(func.sum(case((Lead.source == "tradeshow", 1), else_=0)), 0),
        func.coalesce(func.sum(case((Lead.source == "web", 1), else_=0)), 0),
        func.avg(Lead.completion_time),
        func.avg(Lead.levels_completed),
        func.count(func.distinct(Lead.company)),
    )
    event_count = func.count(Lead.id).label("count")
    by_event_query = (
        select(Lead.event, event_count)
        .where(Lead.event.is_not(None))
        .group_by(Lead.event)
        .order_by(desc(event_count))
    )

    try:
        total, tradeshow, web, avg_time, avg_levels, companies = (await db.execute(totals_query)).one()
        by_event = (await db.execute(by_event_query)).all()
    except SQLAlchemyError:
        logger.exception("Error fetching lead stats")
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")

    return {
        "success": True,
        "data": {
            "totalLeads": total,
            "bySource": {
                "tradeshow": int(tradeshow),
                "web": int(web),
            },
            "averageCompletionTime": round(float(avg_time)) if avg_time is not None else 0,
            "averageLevelsCompleted": round(float(avg_levels), 1) if avg_levels is not None else 0,
            "uniqueCompanies": companies,
            "byEvent": [{"event": event, "count": count} for event, count in by_event],
        },
    }
