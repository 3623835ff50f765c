"""
Unit tests for the interaction pipeline.

Verifies stage ordering, metering commit placement, the rate-limited
short-circuit and operator notifications on provider failure.
"""

import pytest
from fastapi import BackgroundTasks

from swift_assistant.domain.interaction import AudioInput, ChatTurn, InteractionRequest, RequestContext
from swift_assistant.infrastructure.exceptions import (
    ClientInputInvalid,
    DownstreamUnavailable,
    InternalEmptyResult,
)
from swift_assistant.infrastructure.services.interaction_pipeline import InteractionPipeline


PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


async def read_audio(audio):
    if isinstance(audio, bytes):
        return audio
    return b"".join([chunk async for chunk in audio])


def make_request(user, data=b"RIFF....WAVE", **kwargs):
    return InteractionRequest(
        input=AudioInput(data=data),
        user=user,
        context=RequestContext(correlation_id="req-123", user_agent="SwiftAssistant/2.1 (iOS 18)"),
        **kwargs,
    )


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_audio_in_audio_out(self, pipeline, test_user, synthesizer):
        result = await pipeline.run(make_request(test_user), BackgroundTasks())

        assert await read_audio(result.audio) == synthesizer.audio
        assert result.transcript == "what time is it"
        assert result.response_text == "It is noon."
        assert result.rate_limited is False
        assert synthesizer.calls == ["It is noon."]

    @pytest.mark.asyncio
    async def test_commits_one_interaction(self, pipeline, test_user, interaction_store):
        result = await pipeline.run(make_request(test_user), BackgroundTasks())

        assert await interaction_store.count_total(test_user.id) == 1
        assert result.usage_count == 1
        assert result.daily_limit == 10
        assert result.interaction_id is not None

    @pytest.mark.asyncio
    async def test_text_input_skips_transcription(self, pipeline, test_user, transcriber, completer):
        request = InteractionRequest(input="  hello there  ", user=test_user)

        result = await pipeline.run(request, BackgroundTasks())

        assert transcriber.calls == []
        assert result.transcript == "hello there"
        assert completer.calls[0][-1] == {"role": "user", "content": "hello there"}

    @pytest.mark.asyncio
    async def test_history_precedes_new_turn(self, pipeline, test_user, completer):
        history = [
            ChatTurn(role="user", content="hi"),
            ChatTurn(role="assistant", content="hello"),
        ]

        await pipeline.run(make_request(test_user, history=history), BackgroundTasks())

        messages = completer.calls[0]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[1]["content"] == "hi"

    @pytest.mark.asyncio
    async def test_screenshot_attached_as_image_part(self, pipeline, test_user, completer):
        await pipeline.run(make_request(test_user, screenshot=PNG_DATA_URL), BackgroundTasks())

        last = completer.calls[0][-1]
        assert last["content"][0] == {"type": "text", "text": "what time is it"}
        assert last["content"][1]["image_url"]["url"] == PNG_DATA_URL

    @pytest.mark.asyncio
    async def test_anonymous_not_metered(self, pipeline, interaction_store):
        result = await pipeline.run(make_request(None), BackgroundTasks())

        assert interaction_store.rows == []
        assert result.usage_count is None
        assert result.interaction_id is None


class TestRateLimited:

    @pytest.mark.asyncio
    async def test_no_provider_calls_at_limit(
        self, pipeline, test_user, interaction_store, transcriber, completer, synthesizer
    ):
        interaction_store.seed(test_user.id, 10)

        result = await pipeline.run(make_request(test_user), BackgroundTasks())

        assert result.rate_limited is True
        assert result.usage_count == 10
        assert result.daily_limit == 10
        assert result.response_text == "Daily limit reached."
        assert transcriber.calls == []
        assert completer.calls == []
        assert len(interaction_store.rows) == 10

    @pytest.mark.asyncio
    async def test_uses_prerendered_audio(
        self, tmp_path, gate, meter, transcriber, completer, synthesizer, notifier,
        test_user, interaction_store,
    ):
        asset = tmp_path / "limit.pcm"
        asset.write_bytes(b"cached-limit-audio")
        pipeline = InteractionPipeline(
            gate, meter, transcriber, completer, synthesizer, notifier,
            limit_message="Daily limit reached.",
            limit_audio_path=str(asset),
        )
        interaction_store.seed(test_user.id, 10)

        result = await pipeline.run(make_request(test_user), BackgroundTasks())

        assert result.audio == b"cached-limit-audio"
        assert synthesizer.calls == []

    @pytest.mark.asyncio
    async def test_synthesizes_when_asset_missing(self, pipeline, test_user, interaction_store, synthesizer):
        interaction_store.seed(test_user.id, 10)

        await pipeline.run(make_request(test_user), BackgroundTasks())

        assert synthesizer.calls == ["Daily limit reached."]


class TestFailures:

    @pytest.mark.asyncio
    async def test_empty_audio_rejected_before_completion(self, pipeline, test_user, completer, interaction_store):
        with pytest.raises(ClientInputInvalid, match="Invalid audio"):
            await pipeline.run(make_request(test_user, data=b""), BackgroundTasks())

        assert completer.calls == []
        assert interaction_store.rows == []

    @pytest.mark.asyncio
    async def test_invalid_screenshot_rejected(self, pipeline, test_user, transcriber):
        with pytest.raises(ClientInputInvalid, match="Invalid screenshot"):
            await pipeline.run(make_request(test_user, screenshot="not-a-data-url"), BackgroundTasks())

        assert transcriber.calls == []

    @pytest.mark.asyncio
    async def test_empty_completion_is_internal_error(
        self, pipeline, test_user, completer, synthesizer, notifier, interaction_store
    ):
        completer.reply = ""
        background = BackgroundTasks()

        with pytest.raises(InternalEmptyResult):
            await pipeline.run(make_request(test_user), background)

        assert synthesizer.calls == []
        assert interaction_store.rows == []

        await background()
        assert len(notifier.errors) == 1
        assert notifier.errors[0][0] == "LLM"
        assert notifier.errors[0][3] == "req-123"

    @pytest.mark.asyncio
    async def test_completion_failure_notifies_and_propagates(self, pipeline, test_user, completer, notifier):
        completer.error = DownstreamUnavailable(
            "Completion request failed", service="LLM", body='{"error": "overloaded"}', status_code=503
        )
        background = BackgroundTasks()

        with pytest.raises(DownstreamUnavailable):
            await pipeline.run(make_request(test_user), background)

        await background()
        service, error, details, correlation_id, user_agent = notifier.errors[0]
        assert service == "LLM"
        assert details == '{"error": "overloaded"}'
        assert correlation_id == "req-123"
        assert user_agent == "SwiftAssistant/2.1 (iOS 18)"

    @pytest.mark.asyncio
    async def test_synthesis_failure_after_commit(
        self, pipeline, test_user, synthesizer, notifier, interaction_store
    ):
        """A completed reply is metered even if speech synthesis then fails."""
        synthesizer.error = DownstreamUnavailable("Speech synthesis failed", service="Cartesia", status_code=500)
        background = BackgroundTasks()

        with pytest.raises(DownstreamUnavailable):
            await pipeline.run(make_request(test_user), background)

        assert len(interaction_store.rows) == 1
        await background()
        assert notifier.errors[0][0] == "Cartesia"

    @pytest.mark.asyncio
    async def test_metering_failure_does_not_fail_request(self, pipeline, test_user, interaction_store):
        interaction_store.fail = True

        result = await pipeline.run(make_request(test_user), BackgroundTasks())

        assert result.audio
        assert result.interaction_id is None
