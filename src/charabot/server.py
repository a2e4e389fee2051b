"""HTTP surface: messaging webhook and admin dashboard endpoints"""

import asyncio
from typing import Any, Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .bot import ChatBot
from .models import InboundEvent
from .transport import parse_line_events

logger = logging.getLogger(__name__)


class WebhookBody(BaseModel):
    destination: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)


class AdminRespondRequest(BaseModel):
    user_id: str
    admin_id: str
    message: str = Field(min_length=1)


class EndSessionRequest(BaseModel):
    user_id: str
    persona_id: Optional[str] = None


class CharabotServer:
    """FastAPI app exposing a ChatBot"""

    def __init__(self, bot: ChatBot):
        self.bot = bot

        self.app = FastAPI(
            title="Charabot",
            description="Persona chatbot webhook and admin dashboard API"
        )

        self._register_routes()

    def _register_routes(self):
        """Register all HTTP routes"""

        @self.app.post("/webhook")
        async def webhook(body: WebhookBody) -> Dict[str, Any]:
            """Process every event in a delivery; always 200 once the payload parses"""
            events = [InboundEvent(**raw) for raw in parse_line_events(body.model_dump())]
            results = await asyncio.gather(
                *(self.bot.handle_event(event) for event in events),
                return_exceptions=True,
            )
            for event, result in zip(events, results):
                if isinstance(result, Exception):
                    logger.error(f"Unhandled error for event from {event.user_id}: {result!r}")
            return {"success": True, "processed": len(events)}

        @self.app.get("/characters")
        async def list_characters() -> List[Dict[str, Any]]:
            return [
                persona.model_dump(include={"id", "name", "description", "image_url"})
                for persona in self.bot.catalog.list_active_personas()
            ]

        @self.app.get("/admin/requests")
        async def pending_requests() -> Dict[str, Any]:
            requests = self.bot.escalation.list_pending()
            return {
                "success": True,
                "requests": [request.model_dump(mode='json') for request in requests],
                "count": len(requests),
            }

        @self.app.get("/admin/notifications")
        async def notifications() -> Dict[str, Any]:
            queued = self.bot.escalation.sink.pending()
            return {
                "success": True,
                "notifications": [notification.model_dump(mode='json') for notification in queued],
                "count": len(queued),
            }

        @self.app.post("/admin/respond")
        async def admin_respond(request: AdminRespondRequest) -> Dict[str, Any]:
            result = await self.bot.deliver_admin_response(request.user_id, request.admin_id, request.message)
            return result.model_dump()

        @self.app.post("/admin/end-session")
        async def end_session(request: EndSessionRequest) -> Dict[str, Any]:
            return self.bot.escalation.end_escalation(request.user_id, request.persona_id).model_dump()

        @self.app.get("/session/{user_id}")
        async def session_info(user_id: str) -> Dict[str, Any]:
            info = self.bot.escalation.get_session_info(user_id)
            if not info["success"]:
                raise HTTPException(status_code=404, detail=info["error"])
            return info

        @self.app.get("/health")
        async def health() -> Dict[str, Any]:
            return {
                "status": "ok",
                "personas": len(self.bot.catalog.list_active_personas()),
                "provider": type(self.bot.generator.provider).__name__,
                "transport": type(self.bot.transport).__name__ if self.bot.transport else None,
            }

    def get_app(self) -> FastAPI:
        return self.app
