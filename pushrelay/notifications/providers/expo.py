import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..classifier import PushProvider, PushToken
from ..schemas import (
    BatchResult,
    DispatchOutcome,
    MISSING_TICKET,
    TRANSPORT_ERROR,
)
from ...config import EXPO_PUSH_URL

logger = logging.getLogger(__name__)

# Expo rejects requests carrying more than 100 messages
EXPO_MAX_BATCH_SIZE = 100


def _chunk(seq: Sequence[PushToken], size: int):
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class ExpoPushClient:
    """Sends notifications through the Expo push service."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        push_url: str = EXPO_PUSH_URL,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        sound: Optional[str] = "default",
        channel_id: Optional[str] = None,
        batch_size: int = EXPO_MAX_BATCH_SIZE
    ):
        self.push_url = push_url
        self.access_token = access_token
        self.timeout = timeout
        self.sound = sound
        self.channel_id = channel_id
        self.batch_size = min(batch_size, EXPO_MAX_BATCH_SIZE)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self.http_client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def build_message(
        self,
        token: str,
        title: str,
        body: str,
        data: Dict[str, Any],
        sound: bool = True
    ) -> Dict[str, Any]:
        message = {
            "to": token,
            "title": title,
            "body": body,
            "data": data,
            "priority": "high",
        }
        if sound and self.sound:
            message["sound"] = self.sound
        if self.channel_id:
            message["channelId"] = self.channel_id
        return message

    async def _send_batch(self, messages: List[Dict[str, Any]], batch_index: int) -> BatchResult:
        """POST one batch and return its tickets, or the reason the request failed."""
        try:
            response = await self.http_client.post(
                self.push_url,
                json=messages,
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"[expo] Batch {batch_index} timed out after {self.timeout}s: {e!r}")
            return BatchResult.failure(f"timeout: {e!r}")
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[expo] Batch {batch_index} rejected: {e.response.status_code} - {e.response.text}"
            )
            return BatchResult.failure(f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"[expo] Batch {batch_index} failed: {e!r}")
            return BatchResult.failure(str(e) or repr(e))
        except ValueError as e:
            logger.error(f"[expo] Batch {batch_index} returned invalid JSON: {e}")
            return BatchResult.failure("invalid JSON response")

        tickets = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(tickets, list):
            errors = payload.get("errors") if isinstance(payload, dict) else None
            logger.error(f"[expo] Batch {batch_index} response has no tickets: {errors or payload}")
            return BatchResult.failure(f"no tickets in response: {errors or payload}")

        return BatchResult.ok(tickets)

    def _ticket_outcome(self, token: PushToken, ticket: Any) -> DispatchOutcome:
        if isinstance(ticket, dict) and ticket.get("status") == "ok":
            return DispatchOutcome.delivered(token.value, PushProvider.EXPO)

        details = ticket.get("details") if isinstance(ticket, dict) else None
        error = (details or {}).get("error") if isinstance(details, dict) else None
        message = ticket.get("message") if isinstance(ticket, dict) else None
        logger.warning(
            f"[expo] Failed to send notification to {token.masked}: {error or 'error'} {message or ''}".rstrip()
        )
        return DispatchOutcome.failed(
            token.value, PushProvider.EXPO, error=error or "error", message=message
        )

    async def send(
        self,
        tokens: List[PushToken],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        sound: bool = True
    ) -> List[DispatchOutcome]:
        """
        Send to Expo tokens in batches. A failed batch fails only its own
        tokens; outcomes come back in the order the tokens were given.
        """
        data = data or {}
        outcomes: List[DispatchOutcome] = []

        for batch_index, batch in enumerate(_chunk(tokens, self.batch_size)):
            messages = [self.build_message(t.value, title, body, data, sound) for t in batch]
            result = await self._send_batch(messages, batch_index)

            if not result.is_ok:
                outcomes.extend(
                    DispatchOutcome.failed(t.value, PushProvider.EXPO, TRANSPORT_ERROR, result.error)
                    for t in batch
                )
                continue

            tickets = result.responses
            if len(tickets) != len(batch):
                logger.warning(
                    f"[expo] Batch {batch_index} returned {len(tickets)} tickets for {len(batch)} messages"
                )
            for position, token in enumerate(batch):
                if position < len(tickets):
                    outcomes.append(self._ticket_outcome(token, tickets[position]))
                else:
                    outcomes.append(
                        DispatchOutcome.failed(token.value, PushProvider.EXPO, MISSING_TICKET)
                    )

        sent = sum(1 for o in outcomes if o.success)
        logger.info(f"[expo] Results: {sent} success, {len(outcomes) - sent} failed")
        return outcomes
