"""Outbound delivery of replies to the messaging platform"""

from typing import Any, Dict, List, Optional, Protocol
import logging

import httpx

from .models import BotReply

LINE_API_BASE = "https://api.line.me/v2/bot"
QUICK_REPLY_LABEL_LIMIT = 20


class MessagingTransport(Protocol):
    """The bot produces text; a transport delivers it"""

    async def reply(self, reply_token: str, reply: BotReply) -> bool:
        ...

    async def push(self, user_id: str, reply: BotReply) -> bool:
        ...


def build_text_message(reply: BotReply) -> Dict[str, Any]:
    """LINE text message object, with quick reply buttons when present"""
    message: Dict[str, Any] = {"type": "text", "text": reply.text}
    if reply.quick_replies:
        message["quickReply"] = {
            "items": [
                {
                    "type": "action",
                    "action": {
                        "type": "message",
                        "label": label[:QUICK_REPLY_LABEL_LIMIT],
                        "text": label,
                    },
                }
                for label in reply.quick_replies
            ]
        }
    return message


class LineTransport:
    """LINE Messaging API over httpx"""

    def __init__(
        self,
        channel_access_token: str,
        api_base: str = LINE_API_BASE,
        timeout: float = 10.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.channel_access_token = channel_access_token
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.http_transport = http_transport
        self.logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.channel_access_token}",
            "Content-Type": "application/json",
        }

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.http_transport) as client:
                response = await client.post(f"{self.api_base}{endpoint}", json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            self.logger.error(f"LINE {endpoint} request failed: {e}")
            return False

        if response.status_code != 200:
            self.logger.error(f"LINE {endpoint} returned {response.status_code}: {response.text}")
            return False
        return True

    async def reply(self, reply_token: str, reply: BotReply) -> bool:
        return await self._post("/message/reply", {
            "replyToken": reply_token,
            "messages": [build_text_message(reply)],
        })

    async def push(self, user_id: str, reply: BotReply) -> bool:
        return await self._post("/message/push", {
            "to": user_id,
            "messages": [build_text_message(reply)],
        })


def parse_line_events(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a LINE webhook body into {user_id, type, text, reply_token} dicts"""
    events = []
    for event in body.get("events", []):
        user_id = event.get("source", {}).get("userId")
        if not user_id:
            continue
        message = event.get("message") or {}
        events.append({
            "user_id": user_id,
            "type": event.get("type", "message"),
            "text": message.get("text", "") if message.get("type", "text") == "text" else "",
            "reply_token": event.get("replyToken"),
        })
    return events
