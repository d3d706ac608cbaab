"""HTTP client for the chat gateway bridge.

The gateway is a thin bridge in front of the chat platform's bot API. It forwards
message, reaction and voice events to ``/webhooks/chat`` and exposes the REST
endpoints used here for lookups and message delivery.
"""

import httpx
from loguru import logger
from pydantic import BaseModel

from game_queue.schemas import MemberRef, RenderedHandle, SessionView


class MemberLookupResponse(BaseModel):
    member: MemberRef | None = None


class VoiceMembersResponse(BaseModel):
    members: list[MemberRef] = []


class PostMessageResponse(BaseModel):
    message_id: str


class ChatGatewayClient:
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        if extra:
            headers.update(extra)
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._build_headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def lookup_member(self, identifier: str, guild_id: str) -> MemberRef | None:
        """Resolve a username, display name or mention within a guild."""
        async with self._client() as client:
            response = await client.get(
                f"/guilds/{guild_id}/members/lookup",
                params={"q": identifier},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return MemberLookupResponse.model_validate(response.json()).member

    async def list_voice_present_members(self, guild_id: str) -> set[MemberRef]:
        async with self._client() as client:
            response = await client.get(f"/guilds/{guild_id}/voice/members")
            response.raise_for_status()
            return set(VoiceMembersResponse.model_validate(response.json()).members)

    async def render(self, view: SessionView) -> str:
        """Post the session message and attach its reaction buttons."""
        async with self._client() as client:
            response = await client.post(
                f"/channels/{view.channel_id}/messages",
                json={
                    "session": view.model_dump(mode="json"),
                    "reactions": view.buttons,
                },
            )
            response.raise_for_status()
            data = response.json()
            logger.debug(f"render response: {data}")
            return PostMessageResponse.model_validate(data).message_id

    async def retire(self, handle: RenderedHandle) -> None:
        await self.delete_message(handle.channel_id, handle.message_id)

    async def send_reply(self, channel_id: str, text: str, reply_to: str | None = None) -> None:
        async with self._client() as client:
            response = await client.post(
                f"/channels/{channel_id}/messages",
                json={"content": text, "reply_to": reply_to},
            )
            response.raise_for_status()

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        async with self._client() as client:
            response = await client.delete(f"/channels/{channel_id}/messages/{message_id}")
            if response.status_code == 404:
                logger.info(f"Message {message_id} already deleted")
                return
            response.raise_for_status()
