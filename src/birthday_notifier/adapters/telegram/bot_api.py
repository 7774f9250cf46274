from __future__ import annotations

import logging
from typing import Any

import httpx

from ...domain.formatter import to_plain_text
from .base import DeliveryError

LOGGER = logging.getLogger(__name__)

TELEGRAM_SEND_MESSAGE_URL = "https://api.telegram.org/bot{token}/sendMessage"
RICH_TEXT_PARSE_MODE = "HTML"
TELEGRAM_MESSAGE_LIMIT = 4096
BLOCK_SEPARATOR = "\n\n"


def _describe_failure(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(payload, dict) and isinstance(payload.get("description"), str):
        return f"HTTP {response.status_code}: {payload['description']}"
    return f"HTTP {response.status_code}"


def _is_markup_rejection(response: httpx.Response) -> bool:
    # Telegram reports bad markup as "Bad Request: can't parse entities: ...".
    return response.status_code == 400 and "parse entities" in _describe_failure(response).lower()


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split text into chunks of at most ``limit`` characters.

    Chunks break between blank-line separated blocks so markup stays balanced;
    a single block longer than the limit is cut at the limit.
    """
    if len(text) <= limit:
        return [text]

    pieces: list[str] = []
    for block in text.split(BLOCK_SEPARATOR):
        pieces.extend(block[start : start + limit] for start in range(0, max(len(block), 1), limit))

    chunks: list[str] = []
    current = ""
    for piece in pieces:
        candidate = f"{current}{BLOCK_SEPARATOR}{piece}" if current else piece
        if len(candidate) <= limit:
            current = candidate
        else:
            chunks.append(current)
            current = piece
    if current:
        chunks.append(current)
    return chunks


class TelegramNotifierSink:
    """Sends messages through the Telegram Bot API.

    Messages are sent with HTML parse mode. When Telegram refuses the markup
    the message is sent once more with the tags stripped. Messages over the
    Bot API length limit go out as several consecutive messages.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        bot_token: str,
        channel_id: str,
        parse_mode: str | None = RICH_TEXT_PARSE_MODE,
    ) -> None:
        self._client = client
        self._url = TELEGRAM_SEND_MESSAGE_URL.format(token=bot_token.strip())
        self._channel_id = channel_id
        self._parse_mode = parse_mode

    async def _post(self, text: str, parse_mode: str | None) -> httpx.Response:
        body: dict[str, Any] = {"chat_id": self._channel_id, "text": text}
        if parse_mode:
            body["parse_mode"] = parse_mode
        try:
            return await self._client.post(self._url, json=body)
        except httpx.HTTPError as exc:
            # The request URL carries the bot token; keep it out of the message.
            raise DeliveryError(f"Telegram request failed: {type(exc).__name__}") from exc

    async def deliver(self, message: str) -> None:
        chunks = split_message(message)
        if len(chunks) > 1:
            LOGGER.warning(
                "Message of %d characters exceeds the Telegram limit, sending %d parts",
                len(message),
                len(chunks),
            )
        for chunk in chunks:
            await self._send(chunk)

    async def _send(self, text: str) -> None:
        response = await self._post(text, self._parse_mode)
        if self._parse_mode and _is_markup_rejection(response):
            LOGGER.warning(
                "Telegram rejected %s markup (%s), sending as plain text",
                self._parse_mode,
                _describe_failure(response),
            )
            response = await self._post(to_plain_text(text), None)

        if response.status_code != 200:
            raise DeliveryError(f"Telegram sendMessage failed: {_describe_failure(response)}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise DeliveryError("Telegram sendMessage returned invalid JSON") from exc
        if not isinstance(payload, dict) or payload.get("ok") is not True:
            raise DeliveryError("Telegram sendMessage did not confirm delivery")
        LOGGER.debug("Telegram message delivered to %s", self._channel_id)
