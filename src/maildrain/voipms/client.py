"""voip.ms REST client - the remote mailbox, driven as a queue."""

import base64
import binascii
import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from maildrain.config import Settings
from maildrain.engine.errors import RemoteQueueProtocolError
from maildrain.models import Voicemail

logger = logging.getLogger("maildrain.voipms")

# message_num of the logical head; responses are not sorted
HEAD_MESSAGE_NUM = "0"


class VoipMsClient:
    """
    Client for the voip.ms voicemail API.

    The API has no safe way to list-and-process, so the mailbox is used as
    a queue: read message 0, download it, delete it, read message 0 again.

    Usage:
        async with VoipMsClient(settings) as client:
            head = await client.peek_head()
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.voipms_api_url
        self.user = settings.voipms_user
        self._password = settings.voipms_password.get_secret_value()
        self.mailbox = settings.voipms_mailbox
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.voipms_timeout_seconds)

    async def __aenter__(self) -> "VoipMsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _redact(self, text: str) -> str:
        if self._password:
            return text.replace(self._password, "xxxxxxxx")
        return text

    async def _call(self, method: str, **params: str) -> dict[str, Any]:
        """Call one API method and return the decoded JSON body."""
        query = {
            "api_username": self.user,
            "api_password": self._password,
            "method": method,
            **params,
        }
        request = self._client.build_request("GET", self.api_url, params=query)
        logger.debug(f"Calling {method}: {self._redact(str(request.url))}")

        start_time = time.perf_counter()
        try:
            response = await self._client.send(request)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise RemoteQueueProtocolError(
                f"voip.ms {method} request failed: {self._redact(str(e))}", method
            ) from e
        except ValueError as e:
            raise RemoteQueueProtocolError(
                f"voip.ms {method} returned a non-JSON body", method
            ) from e
        elapsed_ms = (time.perf_counter() - start_time) * 1000.0

        logger.debug(
            f"{method} took {elapsed_ms:.1f}ms, {len(response.content)} bytes, "
            f"status {body.get('status') if isinstance(body, dict) else None}"
        )
        if not isinstance(body, dict):
            raise RemoteQueueProtocolError(f"voip.ms {method} returned a non-object body", method)
        return body

    async def list_messages(self) -> list[Voicemail]:
        """
        List the voicemails in the mailbox, in whatever order voip.ms uses.

        An empty mailbox answers ``{"status": "no_messages"}``.
        """
        body = await self._call("getVoicemailMessages", mailbox=self.mailbox)
        status = body.get("status")

        if status == "no_messages":
            return []
        if status != "success":
            raise RemoteQueueProtocolError(
                f"Voip.ms responded with status {status}", "getVoicemailMessages"
            )

        messages = body.get("messages")
        if not isinstance(messages, list) or not messages:
            raise RemoteQueueProtocolError(
                "Voip.MS responded that there were messages, but it didn't return them.",
                "getVoicemailMessages",
            )
        try:
            return [Voicemail.model_validate(message) for message in messages]
        except ValidationError as e:
            raise RemoteQueueProtocolError(
                f"Voip.ms returned a malformed voicemail record: {e}",
                "getVoicemailMessages",
            ) from e

    async def peek_head(self) -> Optional[Voicemail]:
        """Return the voicemail with message_num 0, or None when empty."""
        messages = await self.list_messages()
        if not messages:
            return None

        for message in messages:
            if message.message_num == HEAD_MESSAGE_NUM:
                return message

        raise RemoteQueueProtocolError(
            f"Could not find message with message_num === {HEAD_MESSAGE_NUM} in response.",
            "getVoicemailMessages",
        )

    async def fetch_payload(self, item: Voicemail) -> bytes:
        """Download the head voicemail's audio as mp3 bytes."""
        body = await self._call(
            "getVoicemailMessageFile",
            mailbox=item.mailbox,
            folder=item.folder,
            message_num=HEAD_MESSAGE_NUM,
            format="mp3",
        )
        if body.get("status") != "success":
            raise RemoteQueueProtocolError(
                f"Voip.ms responded with status {body.get('status')}",
                "getVoicemailMessageFile",
            )

        try:
            return base64.b64decode(body["message"]["data"], validate=True)
        except (KeyError, TypeError, binascii.Error) as e:
            raise RemoteQueueProtocolError(
                f"Voip.ms returned an unreadable voicemail file: {e}",
                "getVoicemailMessageFile",
            ) from e

    async def delete_head(self, item: Voicemail) -> None:
        """Delete the head voicemail."""
        body = await self._call(
            "delMessages",
            mailbox=item.mailbox,
            folder=item.folder,
            message_num=HEAD_MESSAGE_NUM,
        )
        if body.get("status") != "success":
            raise RemoteQueueProtocolError(
                f"Voip.ms responded with status {body.get('status')}", "delMessages"
            )
