"""
aistudio/features/generations/service.py

Per-session generation history (newest first, capped per session).
"""

import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, insert, select

from aistudio.core.database import generations, get_db_session
from aistudio.models.generation import Generation, GenerationCreate

MAX_GENERATIONS_PER_SESSION = 50


def new_generation_id(now: Optional[datetime] = None) -> str:
    ms = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    return f"gen_{ms}_{secrets.token_hex(3)}"


def _row_to_generation(row) -> Generation:
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return Generation(
        id=row.id,
        type=row.type,
        image_url=row.image_url,
        prompt=row.prompt,
        metadata=row.details or {},
        created_at=created_at,
    )


def save_generation(session_id: str, data: GenerationCreate, now: Optional[datetime] = None) -> Generation:
    """Insert a generation and trim the session's history to the newest 50."""
    created_at = now or datetime.now(timezone.utc)
    generation = Generation(
        id=new_generation_id(created_at),
        type=data.type,
        image_url=data.image_url,
        prompt=data.prompt,
        metadata=data.metadata,
        created_at=created_at,
    )

    with get_db_session() as session:
        session.execute(
            insert(generations).values(
                id=generation.id,
                session_id=session_id,
                type=generation.type,
                image_url=generation.image_url,
                prompt=generation.prompt,
                details=generation.metadata,
                created_at=generation.created_at,
            )
        )
        keep = (
            select(generations.c.id)
            .where(generations.c.session_id == session_id)
            .order_by(generations.c.created_at.desc(), generations.c.id.desc())
            .limit(MAX_GENERATIONS_PER_SESSION)
        )
        kept_ids = [row[0] for row in session.execute(keep)]
        session.execute(
            delete(generations).where(
                generations.c.session_id == session_id,
                generations.c.id.not_in(kept_ids),
            )
        )

    return generation


def list_generations(session_id: str) -> List[Generation]:
    with get_db_session() as session:
        rows = session.execute(
            select(generations)
            .where(generations.c.session_id == session_id)
            .order_by(generations.c.created_at.desc(), generations.c.id.desc())
        ).all()
        return [_row_to_generation(row) for row in rows]


def delete_generation(session_id: str, generation_id: str) -> bool:
    """Delete one of the session's generations; False when it does not exist."""
    with get_db_session() as session:
        result = session.execute(
            delete(generations).where(
                generations.c.session_id == session_id,
                generations.c.id == generation_id,
            )
        )
        return result.rowcount > 0
