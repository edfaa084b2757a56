#!/usr/bin/env python3
"""
Main FastAPI application for the business chatbot.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .business import BusinessService
from .config import Config
from .controller import Controller
from .errors import NotFoundError, ValidationError
from ..data.knowledge_store import KnowledgeStore
from ..data.populate_db import populate_businesses
from ..schemas.io_models import ChatRequest, RagQueryRequest
from ..utils.logger import get_logger

logger = get_logger("api")


def create_app(controller: Optional[Controller] = None, store: Optional[KnowledgeStore] = None) -> FastAPI:
    """Build the app; components are constructed once and shared by all requests."""
    if controller is None:
        store = store or KnowledgeStore()
        controller = Controller(BusinessService(store))
    store = store or controller.business_service.store

    app = FastAPI(
        title="Business Chatbot API",
        description="Knowledge-grounded chatbot for multiple businesses",
        version="1.0.0",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify the widget hosts
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "database": store.health_check(), "timestamp": now()}

    @app.post("/api/chat")
    def chat(request: ChatRequest, business: Optional[str] = Query(None),
             x_session_id: Optional[str] = Header(None)):
        business_id = business or request.business_id or "default"
        session_id = x_session_id or f"session_{uuid.uuid4().hex}"
        try:
            result = controller.answer(request.message, business_id, f"{business_id}_{session_id}")
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception:
            logger.exception("Chat error")
            raise HTTPException(status_code=500, detail="Failed to process message")

        body = result.model_dump()
        body.update({"business_id": business_id, "session_id": session_id, "timestamp": now()})
        return body

    @app.get("/api/initial-message")
    def initial_message(business: str = Query("default")):
        try:
            data = controller.initial_message(business)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {**data, "business_id": business}

    @app.get("/api/businesses")
    def list_businesses():
        businesses = store.list_businesses()
        return {"businesses": businesses, "total": len(businesses), "timestamp": now()}

    @app.get("/api/business/{business_id}")
    def business_details(business_id: str):
        try:
            details = controller.business_details(business_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {**details, "last_updated": now()}

    @app.get("/api/debug/knowledge-base")
    def debug_knowledge_base(business: str = Query("default")):
        try:
            return controller.knowledge_base(business)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.post("/api/debug/test-rag")
    def explain_retrieval(request: RagQueryRequest, business: str = Query("default")):
        try:
            return controller.explain_retrieval(request.query, business).model_dump()
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/api/debug/stats")
    def debug_stats():
        return {"services": controller.get_stats(), "config": {
            "max_tokens": Config.MAX_TOKENS,
            "temperature": Config.TEMPERATURE,
            "cache_ttl": Config.CACHE_TTL,
        }}

    @app.post("/api/business/{business_id}/cache/clear")
    def clear_business_cache(business_id: str):
        controller.business_service.clear_cache(business_id)
        return {"message": f"Cache cleared for business: {business_id}", "timestamp": now()}

    @app.post("/api/admin/cache/clear")
    def clear_all_cache():
        controller.business_service.clear_cache()
        controller.clear_history()
        return {"message": "All caches cleared", "timestamp": now()}

    @app.get("/api/admin/sessions")
    def active_sessions():
        return {"active_sessions": controller.get_stats()["active_sessions"], "timestamp": now()}

    return app


def seeded_app(database_url: Optional[str] = None) -> FastAPI:
    """
    App over a knowledge store seeded from ``backend/data/raw``.

    Serve with ``uvicorn backend.app.main:seeded_app --factory``.
    """
    knowledge_store = KnowledgeStore(database_url)
    populate_businesses(knowledge_store)
    return create_app(store=knowledge_store)


if __name__ == "__main__":
    import uvicorn

    Config.debug_print()
    uvicorn.run(seeded_app(), host="0.0.0.0", port=8000)
