"""
Sleeping Backend: Hashtag Event Routes
=======================================

What:  GET /events (active events) and GET /events/{tag} (event + entries).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.database import get_db_session
from sleeping.schemas.feed import EventDetailResponse, EventResponse
from sleeping.services.event_service import event_service

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=List[EventResponse])
async def list_events(db: AsyncSession = Depends(get_db_session)) -> List[EventResponse]:
    return await event_service.list_active(db)


@router.get("/{tag}", response_model=EventDetailResponse)
async def get_event(
    tag: str,
    viewer_id: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> EventDetailResponse:
    return await event_service.get_or_create(db, tag, viewer_id=viewer_id)
