"""
WhatsApp Message Dispatcher Tests

Splitting, ordering, pacing and partial-failure handling for long replies.
"""

import asyncio
import math
from unittest.mock import AsyncMock, patch

import pytest

from transport.whatsapp.dispatcher import (
    CHUNK_SIZE,
    INCOMPLETE_DELIVERY_NOTICE,
    MAX_MESSAGE_LENGTH,
    PREFIX_RESERVATION,
    MessageChunk,
    MessageDispatcher,
    plan_delivery,
    render_payload,
)


class RecordingSender:
    """Send primitive that records calls and fails on chosen call numbers."""

    def __init__(self, fail_on=(), events=None):
        self.fail_on = set(fail_on)
        self.events = events if events is not None else []
        self.calls = []

    async def __call__(self, recipient, payload):
        self.calls.append((recipient, payload))
        self.events.append(("send", len(self.calls)))
        if len(self.calls) in self.fail_on:
            raise RuntimeError(f"send {len(self.calls)} failed")

    @property
    def payloads(self):
        return [payload for _, payload in self.calls]


def strip_prefix(payload):
    return payload.split(") ", 1)[1]


@pytest.fixture
def no_sleep():
    with patch("transport.whatsapp.dispatcher.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestConstants:
    """Transport constants."""

    def test_constants(self):
        assert MAX_MESSAGE_LENGTH == 4096
        assert PREFIX_RESERVATION == 20
        assert CHUNK_SIZE == 4076


class TestPlanDelivery:
    """Deterministic slicing into chunks."""

    def test_bodies_reconstruct_text(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(10000))

        plan = plan_delivery(text)

        assert "".join(chunk.body for chunk in plan) == text
        assert len(plan) == math.ceil(len(text) / CHUNK_SIZE)

    def test_indexes_are_one_based_and_share_total(self):
        plan = plan_delivery("y" * 9000)

        assert [chunk.index for chunk in plan] == [1, 2, 3]
        assert {chunk.total for chunk in plan} == {3}

    def test_exact_multiple_has_no_empty_tail(self):
        plan = plan_delivery("z" * (CHUNK_SIZE * 2))

        assert len(plan) == 2
        assert all(len(chunk.body) == CHUNK_SIZE for chunk in plan)

    def test_empty_text_gives_empty_plan(self):
        assert plan_delivery("") == ()

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            plan_delivery("abc", chunk_size=0)


class TestRenderPayload:
    """Prefix rendering and the oversized-payload guard."""

    def test_prefix_format(self):
        chunk = MessageChunk(body="hello", index=2, total=7)

        assert render_payload(chunk) == "(2/7) hello"

    def test_oversized_payload_truncated_with_ellipsis(self, caplog):
        chunk = MessageChunk(body="b" * MAX_MESSAGE_LENGTH, index=1, total=2)

        payload = render_payload(chunk)

        assert len(payload) == MAX_MESSAGE_LENGTH
        assert payload.startswith("(1/2) ")
        assert payload.endswith("...")
        assert payload[:-3] == chunk.render()[:MAX_MESSAGE_LENGTH - 3]
        assert any(record.levelname == "WARNING" for record in caplog.records)

    def test_payload_at_limit_untouched(self):
        chunk = MessageChunk(body="c" * (MAX_MESSAGE_LENGTH - 6), index=1, total=2)

        assert render_payload(chunk) == chunk.render()


class TestShortMessages:
    """Replies that fit in one message."""

    @pytest.mark.asyncio
    async def test_short_text_sent_verbatim_once(self, no_sleep):
        sender = RecordingSender()
        dispatcher = MessageDispatcher(sender)

        result = await dispatcher.deliver("15550001", "hello there")

        assert sender.calls == [("15550001", "hello there")]
        assert result.ok
        assert result.status == "sent"
        no_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_exactly_at_limit_is_single_unprefixed_send(self, no_sleep):
        text = "a" * 4096
        sender = RecordingSender()

        result = await MessageDispatcher(sender).deliver("15550001", text)

        assert sender.payloads == [text]
        assert result.total_chunks == 1
        assert result.chunks_sent == 1

    @pytest.mark.asyncio
    async def test_short_send_failure_reported(self, no_sleep):
        sender = RecordingSender(fail_on={1})

        result = await MessageDispatcher(sender).deliver("15550001", "hi")

        assert not result.ok
        assert result.status == "failed"
        assert "send 1 failed" in result.error
        # No notice for single-message replies
        assert len(sender.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    async def test_blank_text_is_noop(self, text, no_sleep):
        sender = RecordingSender()

        result = await MessageDispatcher(sender).deliver("15550001", text)

        assert sender.calls == []
        assert result.ok
        assert result.status == "skipped"

    @pytest.mark.asyncio
    async def test_empty_recipient_rejected(self):
        with pytest.raises(ValueError):
            await MessageDispatcher(RecordingSender()).deliver("", "hi")


class TestLongMessages:
    """Multi-part delivery."""

    @pytest.mark.asyncio
    async def test_nine_thousand_chars_split_in_three(self, no_sleep):
        text = "x" * 9000
        sender = RecordingSender()

        result = await MessageDispatcher(sender).deliver("15550001", text)

        assert len(sender.calls) == 3
        first = sender.payloads[0]
        assert first.startswith("(1/3) ")
        assert len(strip_prefix(first)) == 4076
        assert len(first) == 4082
        assert sender.payloads[1].startswith("(2/3) ")
        assert sender.payloads[2].startswith("(3/3) ")
        assert result.status == "sent"
        assert result.total_chunks == result.chunks_sent == 3

    @pytest.mark.asyncio
    async def test_one_over_limit_splits(self, no_sleep):
        text = "q" * 4097
        sender = RecordingSender()

        await MessageDispatcher(sender).deliver("15550001", text)

        assert len(sender.calls) == 2
        assert "".join(strip_prefix(p) for p in sender.payloads) == text

    @pytest.mark.asyncio
    async def test_round_trip_and_size_limit(self, no_sleep):
        text = "".join(str(i % 10) for i in range(25000))
        sender = RecordingSender()

        await MessageDispatcher(sender).deliver("15550001", text)

        assert len(sender.calls) == math.ceil(len(text) / 4076)
        assert "".join(strip_prefix(p) for p in sender.payloads) == text
        assert all(len(p) <= MAX_MESSAGE_LENGTH for p in sender.payloads)

    @pytest.mark.asyncio
    async def test_sends_and_pauses_interleave_in_order(self):
        events = []
        sender = RecordingSender(events=events)

        async def fake_sleep(delay):
            events.append(("sleep", delay))

        with patch("transport.whatsapp.dispatcher.asyncio.sleep", side_effect=fake_sleep):
            await MessageDispatcher(sender).deliver("15550001", "x" * 9000)

        assert events == [
            ("send", 1), ("sleep", 1.5),
            ("send", 2), ("sleep", 1.5),
            ("send", 3),
        ]

    @pytest.mark.asyncio
    async def test_delay_override(self, no_sleep):
        dispatcher = MessageDispatcher(RecordingSender(), inter_chunk_delay=3.0)

        await dispatcher.deliver("15550001", "x" * 9000, inter_chunk_delay=0.25)

        assert [c.args[0] for c in no_sleep.await_args_list] == [0.25, 0.25]

    @pytest.mark.asyncio
    async def test_configured_delay_used_by_default(self, no_sleep):
        dispatcher = MessageDispatcher(RecordingSender(), inter_chunk_delay=2.0)

        await dispatcher.deliver("15550001", "x" * 5000)

        no_sleep.assert_awaited_once_with(2.0)


class TestPartialFailure:
    """Abort-on-failure behaviour."""

    @pytest.mark.asyncio
    async def test_middle_failure_stops_plan_without_notice(self, no_sleep):
        sender = RecordingSender(fail_on={2})

        result = await MessageDispatcher(sender).deliver("15550001", "x" * 9000)

        assert len(sender.calls) == 2
        assert not any(INCOMPLETE_DELIVERY_NOTICE == p for p in sender.payloads)
        assert result.status == "failed"
        assert result.chunks_sent == 1
        assert result.total_chunks == 3

    @pytest.mark.asyncio
    async def test_first_failure_sends_one_notice(self, no_sleep):
        sender = RecordingSender(fail_on={1})

        result = await MessageDispatcher(sender).deliver("15550001", "x" * 9000)

        assert len(sender.calls) == 2
        assert sender.calls[1] == ("15550001", INCOMPLETE_DELIVERY_NOTICE)
        assert result.status == "failed"
        assert result.chunks_sent == 0
        no_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_notice_failure_is_swallowed(self, no_sleep, caplog):
        sender = RecordingSender(fail_on={1, 2})

        result = await MessageDispatcher(sender).deliver("15550001", "x" * 9000)

        assert len(sender.calls) == 2
        assert result.status == "failed"
        assert "send 1 failed" in result.error
        warnings = [r for r in caplog.records if r.levelname == "WARNING"]
        assert any("incomplete delivery" in r.getMessage() for r in warnings)

    @pytest.mark.asyncio
    async def test_last_chunk_failure(self, no_sleep):
        sender = RecordingSender(fail_on={3})

        result = await MessageDispatcher(sender).deliver("15550001", "x" * 9000)

        assert len(sender.calls) == 3
        assert result.chunks_sent == 2
        assert no_sleep.await_count == 2


class TestOptionalLimits:
    """Send timeout and chunk cap."""

    @pytest.mark.asyncio
    async def test_send_timeout_counts_as_failure(self):
        async def hanging_send(recipient, payload):
            await asyncio.sleep(10)

        dispatcher = MessageDispatcher(hanging_send, send_timeout=0.01)

        result = await dispatcher.deliver("15550001", "hello")

        assert result.status == "failed"
        assert result.error

    @pytest.mark.asyncio
    async def test_max_chunks_refuses_before_sending(self, no_sleep):
        sender = RecordingSender()
        dispatcher = MessageDispatcher(sender, max_chunks=2)

        result = await dispatcher.deliver("15550001", "x" * 9000)

        assert sender.calls == []
        assert result.status == "rejected"
        assert result.total_chunks == 3
        assert not result.ok

    @pytest.mark.asyncio
    async def test_max_chunks_allows_plans_within_cap(self, no_sleep):
        sender = RecordingSender()

        result = await MessageDispatcher(sender, max_chunks=3).deliver("15550001", "x" * 9000)

        assert result.status == "sent"
        assert len(sender.calls) == 3

    @pytest.mark.parametrize("cap", [0, -1])
    def test_non_positive_cap_rejected(self, cap):
        with pytest.raises(ValueError):
            MessageDispatcher(RecordingSender(), max_chunks=cap)


class TestConcurrentDeliveries:
    """Independent deliver() calls share nothing."""

    @pytest.mark.asyncio
    async def test_parallel_recipients_keep_their_own_order(self, no_sleep):
        sender = RecordingSender()
        dispatcher = MessageDispatcher(sender)

        await asyncio.gather(
            dispatcher.deliver("alice", "a" * 9000),
            dispatcher.deliver("bob", "b" * 9000),
        )

        for recipient in ("alice", "bob"):
            prefixes = [p[:6] for r, p in sender.calls if r == recipient]
            assert prefixes == ["(1/3) ", "(2/3) ", "(3/3) "]
