"""
Sleeping Backend: Hashtag Event Service
========================================

What:  Time-boxed hashtag challenges ("#AuraGold") and the posts entering them.
How:   A post enters an event when its description contains `#<tag>`.
       Looking up an unknown tag creates a default active event for it.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.exceptions import ValidationError
from sleeping.models import Event, Post
from sleeping.schemas.feed import EventDetailResponse, EventResponse
from sleeping.services.feed_service import post_query, row_to_post

logger = logging.getLogger(__name__)

DEFAULT_BANNER_URL = "https://images.unsplash.com/photo-1614850523296-d8c1af93d400"
DEFAULT_END_DATE = datetime(2026, 12, 31, tzinfo=timezone.utc)
SPECIAL_TITLES = {"AuraGold": "Desafio Aura Dourada"}
DEFAULT_TITLE = "Festival de Inverno"


def normalize_tag(tag: str) -> str:
    return tag.strip().lstrip("#").strip()


class EventService:

    async def list_active(self, db: AsyncSession) -> List[EventResponse]:
        events = await db.scalars(
            select(Event).where(Event.active.is_(True)).order_by(Event.created_at.desc(), Event.id.desc())
        )
        return [EventResponse.model_validate(e) for e in events]

    async def get_or_create(
        self, db: AsyncSession, tag: str, viewer_id: Optional[int] = None
    ) -> EventDetailResponse:
        """
        Return the event for `tag` with its entries, most liked first.

        A leading '#' is ignored. Unknown tags get a default event.
        """
        tag = normalize_tag(tag)
        if not tag:
            raise ValidationError(message="Event tag cannot be empty", field="tag")

        event = await db.scalar(select(Event).where(Event.tag == tag))
        if event is None:
            event = Event(
                tag=tag,
                title=SPECIAL_TITLES.get(tag, DEFAULT_TITLE),
                description=f"Poste seu vídeo com a tag #{tag}!",
                banner_url=DEFAULT_BANNER_URL,
                active=True,
                end_date=DEFAULT_END_DATE,
            )
            db.add(event)
            await db.flush()
            await db.refresh(event)
            logger.info("Created default event for #%s", tag)

        rows = await db.execute(
            post_query(viewer_id)
            .where(Post.description.contains(f"#{tag}", autoescape=True))
            .order_by(desc("likes"), Post.created_at.desc())
        )
        return EventDetailResponse(
            event=EventResponse.model_validate(event),
            posts=[row_to_post(row) for row in rows.all()],
        )


# ── Singleton Instance ────────────────────────────────────────────────────
event_service = EventService()
