"""
WhatsApp Message Dispatcher

Turns one logical reply into one or more physical sends.

Rules:
- Replies up to MAX_MESSAGE_LENGTH go out verbatim in a single send
- Longer replies are sliced left-to-right and prefixed "(i/n) "
- Parts are sent strictly one after another, paced by a fixed delay
- A failed part stops the plan. No retries.
- If the first part fails, the recipient gets one best-effort notice
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional

logger = logging.getLogger(__name__)


MAX_MESSAGE_LENGTH = 4096
PREFIX_RESERVATION = 20
CHUNK_SIZE = MAX_MESSAGE_LENGTH - PREFIX_RESERVATION
DEFAULT_INTER_CHUNK_DELAY = 1.5  # seconds
ELLIPSIS = "..."

INCOMPLETE_DELIVERY_NOTICE = (
    "Sorry, this message was too long and could not be fully delivered."
)

SendOne = Callable[[str, str], Awaitable[object]]
DeliveryStatus = Literal["sent", "skipped", "failed", "rejected"]


@dataclass(frozen=True)
class MessageChunk:
    """One slice of a long reply plus its position in the plan."""

    body: str
    index: int  # 1-based
    total: int

    @property
    def prefix(self) -> str:
        return f"({self.index}/{self.total}) "

    def render(self) -> str:
        return self.prefix + self.body


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a single deliver() call."""

    status: DeliveryStatus
    total_chunks: int = 0
    chunks_sent: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in ("sent", "skipped")


def plan_delivery(text: str, chunk_size: int = CHUNK_SIZE) -> tuple[MessageChunk, ...]:
    """
    Slice text into ordered chunks of at most chunk_size characters.

    Bodies concatenate back to text exactly. Empty text yields an empty plan.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    bodies = [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]
    total = len(bodies)
    return tuple(
        MessageChunk(body=body, index=position, total=total)
        for position, body in enumerate(bodies, start=1)
    )


def render_payload(chunk: MessageChunk, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Render a chunk with its "(i/n) " prefix, clamped to max_length.

    Oversized renders are cut to max_length - 3 and end with "...".
    """
    payload = chunk.render()
    if len(payload) <= max_length:
        return payload

    logger.warning(
        f"Rendered part {chunk.index}/{chunk.total} is {len(payload)} chars, "
        f"over the {max_length} limit; truncating",
        extra={
            "chunk_index": chunk.index,
            "total_chunks": chunk.total,
            "payload_length": len(payload),
        },
    )
    return payload[:max_length - len(ELLIPSIS)] + ELLIPSIS


def _describe(error: Exception) -> str:
    # TimeoutError from wait_for has an empty message
    return str(error) or type(error).__name__


class MessageDispatcher:
    """
    Delivers replies of any length through a single-message send primitive.

    The primitive is an async callable (recipient, payload) that returns on
    success and raises on failure. The dispatcher keeps no state between
    calls, so one instance can serve concurrent deliveries.
    """

    def __init__(
        self,
        send_one: SendOne,
        inter_chunk_delay: float = DEFAULT_INTER_CHUNK_DELAY,
        send_timeout: Optional[float] = None,
        max_chunks: Optional[int] = None,
    ):
        """
        Args:
            send_one: Async (recipient, payload) sender. Raises on failure.
            inter_chunk_delay: Default pause in seconds between parts
            send_timeout: Optional per-send timeout in seconds
            max_chunks: Optional cap on parts; longer replies are refused
        """
        if max_chunks is not None and max_chunks < 1:
            raise ValueError("max_chunks must be positive")

        self._send_one = send_one
        self.inter_chunk_delay = inter_chunk_delay
        self.send_timeout = send_timeout
        self.max_chunks = max_chunks

    async def deliver(
        self,
        recipient: str,
        text: str,
        inter_chunk_delay: Optional[float] = None,
    ) -> DeliveryResult:
        """
        Deliver text to recipient, splitting it if it exceeds the limit.

        Args:
            recipient: Destination id (WhatsApp phone number)
            text: Full reply, any length
            inter_chunk_delay: Override for the pause between parts (seconds)

        Returns:
            DeliveryResult. Send failures are reported, never raised.

        Raises:
            ValueError: Empty recipient
        """
        if not recipient:
            raise ValueError("recipient must be a non-empty identifier")

        if not text or not text.strip():
            logger.debug(f"Nothing to deliver to {recipient}; skipping")
            return DeliveryResult(status="skipped")

        if len(text) <= MAX_MESSAGE_LENGTH:
            try:
                await self._send(recipient, text)
            except Exception as e:
                logger.error(
                    f"Failed to deliver message to {recipient}: {e}",
                    extra={"recipient": recipient, "error": _describe(e)},
                )
                return DeliveryResult(status="failed", total_chunks=1, error=_describe(e))
            return DeliveryResult(status="sent", total_chunks=1, chunks_sent=1)

        delay = self.inter_chunk_delay if inter_chunk_delay is None else inter_chunk_delay
        plan = plan_delivery(text)
        total = len(plan)

        if self.max_chunks is not None and total > self.max_chunks:
            logger.warning(
                f"Message to {recipient} needs {total} parts, "
                f"limit is {self.max_chunks}; not sending",
                extra={"recipient": recipient, "total_chunks": total},
            )
            return DeliveryResult(
                status="rejected",
                total_chunks=total,
                error=f"message needs {total} parts (max {self.max_chunks})",
            )

        logger.info(
            f"Message is too long. Splitting into {total} parts.",
            extra={"recipient": recipient, "text_length": len(text), "total_chunks": total},
        )

        for chunk in plan:
            payload = render_payload(chunk)
            try:
                await self._send(recipient, payload)
            except Exception as e:
                logger.error(
                    f"Failed to send part {chunk.index} of {total} to {recipient}. "
                    f"Aborting remaining parts.",
                    extra={
                        "recipient": recipient,
                        "chunk_index": chunk.index,
                        "total_chunks": total,
                        "error": _describe(e),
                    },
                )
                if chunk.index == 1:
                    await self._notify_incomplete(recipient)
                return DeliveryResult(
                    status="failed",
                    total_chunks=total,
                    chunks_sent=chunk.index - 1,
                    error=_describe(e),
                )

            if chunk.index < total:
                await asyncio.sleep(delay)

        logger.info(
            f"All {total} parts of the long message have been sent to {recipient}.",
            extra={"recipient": recipient, "total_chunks": total},
        )
        return DeliveryResult(status="sent", total_chunks=total, chunks_sent=total)

    async def _send(self, recipient: str, payload: str) -> None:
        if self.send_timeout is None:
            await self._send_one(recipient, payload)
        else:
            await asyncio.wait_for(self._send_one(recipient, payload), self.send_timeout)

    async def _notify_incomplete(self, recipient: str) -> None:
        try:
            await self._send(recipient, INCOMPLETE_DELIVERY_NOTICE)
        except Exception as e:
            logger.warning(
                f"Could not notify {recipient} about incomplete delivery: {e}",
                extra={"recipient": recipient, "error": _describe(e)},
            )
