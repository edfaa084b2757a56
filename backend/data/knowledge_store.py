"""Knowledge store: businesses and their knowledge entries in SQL.

This is the only place that touches the database; the rest of the pipeline
sees immutable BusinessContext snapshots.
"""
import json
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .database import create_tables, make_engine, make_session_factory
from .models import Business, KnowledgeBaseEntry
from ..app.business import BusinessContext
from ..utils.logger import get_logger

logger = get_logger("store")


class KnowledgeStore:
    def __init__(self, database_url: Optional[str] = None, engine=None):
        self.engine = engine or make_engine(database_url)
        create_tables(self.engine)
        self.SessionLocal = make_session_factory(self.engine)

    def load_business_context(self, business_id: str) -> Optional[BusinessContext]:
        """Snapshot of an active business and its active entries, or None."""
        db = self.SessionLocal()
        try:
            business = db.get(Business, business_id)
            if business is None or not business.is_active:
                return None

            rows = db.execute(
                select(KnowledgeBaseEntry)
                .where(KnowledgeBaseEntry.business_id == business_id, KnowledgeBaseEntry.is_active.is_(True))
                .order_by(KnowledgeBaseEntry.priority.desc(), KnowledgeBaseEntry.created_at.desc(),
                          KnowledgeBaseEntry.id.desc())
            ).scalars().all()

            entries = [
                {
                    "question": row.question,
                    "answer": row.answer,
                    "category": row.category,
                    "priority": row.priority or 0,
                    "source": row.source,
                }
                for row in rows
            ]
            config = business.config or {}

            return BusinessContext.build(
                business_id=business.id,
                business_name=business.name,
                entries=entries,
                system_prompt=config.get("system_prompt"),
                initial_message=config.get("initial_message"),
                location=business.location,
                specialization=business.specialization,
                business_type=business.type,
                phone=business.phone,
                email=business.email,
                address=business.address,
                website=business.website,
                keywords=business.keywords or [],
            )
        finally:
            db.close()

    def list_businesses(self) -> List[Dict[str, Any]]:
        db = self.SessionLocal()
        try:
            rows = db.execute(
                select(Business).where(Business.is_active.is_(True)).order_by(Business.created_at.desc())
            ).scalars().all()
            return [{"id": b.id, "name": b.name, "type": b.type, "is_active": b.is_active} for b in rows]
        finally:
            db.close()

    def add_business(self, business_id: str, name: str, **fields) -> str:
        db = self.SessionLocal()
        try:
            db.add(Business(id=business_id, name=name, **fields))
            db.commit()
            logger.info(f"Added business {business_id}: {name}")
            return business_id
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def add_entry(self, business_id: str, question: str, answer: str, category: Optional[str] = None,
                  priority: int = 0, source: Optional[str] = None, is_active: bool = True) -> int:
        db = self.SessionLocal()
        try:
            entry = KnowledgeBaseEntry(business_id=business_id, question=question, answer=answer,
                                       category=category, priority=priority, source=source,
                                       is_active=is_active)
            db.add(entry)
            db.commit()
            return entry.id
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def load_from_file(self, path: str) -> str:
        """
        Seed one business from a JSON file.

        Expected shape: {"business": {"id", "name", ...}, "knowledge_base": [{"question", "answer", ...}]}
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        business = dict(data["business"])
        business_id = business.pop("id")
        entries = data.get("knowledge_base", [])

        # One transaction: a bad entry leaves no half-seeded business behind
        with self.SessionLocal() as db, db.begin():
            db.add(Business(id=business_id, name=business.pop("name"), **business))
            db.flush()
            for entry in entries:
                db.add(KnowledgeBaseEntry(business_id=business_id, **entry))

        logger.info(f"Seeded {len(entries)} knowledge entries for {business_id}")
        return business_id

    def health_check(self) -> Dict[str, Any]:
        db = self.SessionLocal()
        try:
            db.execute(select(Business.id).limit(1))
            return {"database": True}
        except SQLAlchemyError as e:
            return {"database": False, "error": str(e)}
        finally:
            db.close()
