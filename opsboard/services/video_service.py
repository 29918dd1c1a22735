"""
Video Room Service
Provisions and cancels Daily.co rooms for booked meetings
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import httpx

from ..config import (
    DAILY_API_KEY,
    DAILY_API_URL,
    VIDEO_PROVIDER_TIMEOUT,
    VIDEO_ROOM_CLOSE_AFTER_MINUTES,
    VIDEO_ROOM_OPEN_BEFORE_MINUTES,
)

logger = logging.getLogger(__name__)


class VideoProvisioningError(Exception):
    """The video provider could not create or cancel a room"""


def generate_room_name(prefix: str = "booking") -> str:
    return f"{prefix}-{secrets.token_hex(6)}"


class VideoService:
    """Thin async client for the Daily.co rooms API"""

    def __init__(
        self,
        api_key: Optional[str] = DAILY_API_KEY,
        base_url: str = DAILY_API_URL,
        timeout: float = VIDEO_PROVIDER_TIMEOUT,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def provider(self) -> str:
        return "daily" if self.api_key else "dev"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def create_room(self, room_name: str, start: datetime, end: datetime) -> dict:
        """
        Create a room usable from shortly before start until an hour after end.
        Returns {"name": ..., "url": ...}
        """
        if not self.api_key:
            logger.warning("⚠️ DAILY_API_KEY missing - using a development room")
            return {"name": room_name, "url": f"https://demo.daily.co/{room_name}"}

        not_before = start - timedelta(minutes=VIDEO_ROOM_OPEN_BEFORE_MINUTES)
        expires = end + timedelta(minutes=VIDEO_ROOM_CLOSE_AFTER_MINUTES)
        payload = {
            "name": room_name,
            "properties": {
                # naive UTC datetimes, so convert via calendar arithmetic
                "nbf": int((not_before - datetime(1970, 1, 1)).total_seconds()),
                "exp": int((expires - datetime(1970, 1, 1)).total_seconds()),
                "enable_chat": True,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/rooms", json=payload, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Daily API request failed: {e}")
            raise VideoProvisioningError("Video provider unreachable") from e

        if response.status_code not in (200, 201):
            logger.error(f"❌ Daily API failed ({response.status_code}): {response.text}")
            raise VideoProvisioningError("Failed to generate video meeting")

        room = response.json()
        logger.info(f"✅ Created video room {room.get('name', room_name)}")
        return {"name": room.get("name", room_name), "url": room.get("url")}

    async def delete_room(self, room_name: str) -> bool:
        """Cancel a room. Returns False instead of raising, used during cleanup."""
        if not self.api_key:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.delete(
                    f"{self.base_url}/rooms/{room_name}", headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to delete video room {room_name}: {e}")
            return False

        if response.status_code not in (200, 204, 404):
            logger.error(f"❌ Daily API delete failed ({response.status_code}): {response.text}")
            return False
        return True
