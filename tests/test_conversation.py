"""Tests for conversation context building and chat sessions."""

import asyncio

import pytest

from physique_planner.domain.conversation import (
    ConversationMessage,
    Role,
    Transcript,
)
from physique_planner.domain.errors import (
    EmptyModelOutputError,
    ModelBlockedError,
    UpstreamError,
)
from physique_planner.domain.vision import VisualAssessment
from physique_planner.services.conversation import (
    CHAT_SYSTEM_PROMPT,
    ConversationService,
    ConversationSession,
    build_assessment_message,
    build_intro_message,
)
from physique_planner.services.generation import GenerationResult
from physique_planner.services.metrics import compute_metrics
from tests.conftest import FakeGenerationClient, GatedGenerationClient


def test_intro_message_embeds_metrics_verbatim(profile) -> None:
    metrics = compute_metrics(profile)

    message = build_intro_message(profile, metrics)

    assert message.startswith("Here is my data to personalize the follow-up:")
    assert "- Age: 38 years" in message
    assert "- Height: 165 cm" in message
    assert "- Weight: 68 kg" in message
    assert "- Activity level: Lightly active (x1.375)" in message
    assert "- Estimated BMR: 1426 kcal" in message
    assert "- Maintenance calories (TDEE): 1961 kcal" in message
    assert "- Recommended daily calories for the goal: 1667 kcal" in message
    assert "146 protein / 146 carbs / 56 fat" in message
    assert build_intro_message(profile, metrics) == message


def test_assessment_message_includes_analysis() -> None:
    assessment = VisualAssessment(analysis="Good posture.", weight=68.5, height=165)

    message = build_assessment_message(assessment)

    assert "weight 68.5 kg, height 165 cm" in message
    assert message.endswith("Good posture.")


def test_reply_sends_full_transcript() -> None:
    client = FakeGenerationClient()
    client.queue(GenerationResult(text="Happy to help!"))
    service = ConversationService(client=client, model="chat-model")
    messages = [
        ConversationMessage.user_text("intro"),
        ConversationMessage.assistant_text("hello"),
        ConversationMessage.user_text("question"),
    ]

    reply = asyncio.run(service.reply(messages))

    assert reply.role is Role.ASSISTANT
    assert reply.text == "Happy to help!"
    request = client.requests[0]
    assert request.instructions == CHAT_SYSTEM_PROMPT
    assert [message.text for message in request.messages] == [
        "intro",
        "hello",
        "question",
    ]


def test_reply_rejects_empty_output() -> None:
    client = FakeGenerationClient()
    client.queue(GenerationResult(text="   "))
    service = ConversationService(client=client, model="chat-model")

    with pytest.raises(EmptyModelOutputError):
        asyncio.run(service.reply([ConversationMessage.user_text("hi")]))


def test_session_appends_turns_in_order() -> None:
    client = FakeGenerationClient()
    client.queue(GenerationResult(text="first"), GenerationResult(text="second"))
    session = ConversationSession(
        service=ConversationService(client=client, model="chat-model"),
        transcript=Transcript((ConversationMessage.user_text("intro"),)),
    )

    async def run() -> None:
        await session.send("one")
        await session.send("two")

    asyncio.run(run())

    assert [(m.role, m.text) for m in session.transcript] == [
        (Role.USER, "intro"),
        (Role.USER, "one"),
        (Role.ASSISTANT, "first"),
        (Role.USER, "two"),
        (Role.ASSISTANT, "second"),
    ]
    assert len(client.requests[1].messages) == 4


def test_session_failure_leaves_transcript_untouched() -> None:
    client = FakeGenerationClient()
    client.queue(UpstreamError("boom"))
    session = ConversationSession(
        service=ConversationService(client=client, model="chat-model"),
        transcript=Transcript((ConversationMessage.user_text("intro"),)),
    )

    with pytest.raises(UpstreamError):
        asyncio.run(session.send("hello"))

    assert [m.text for m in session.transcript] == ["intro"]


def test_session_allows_one_model_call_at_a_time() -> None:
    client = GatedGenerationClient()
    session = ConversationSession(
        service=ConversationService(client=client, model="chat-model")
    )

    async def run() -> None:
        first = asyncio.create_task(session.send("one"))
        second = asyncio.create_task(session.send("two"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert client.active == 1
        assert client.release is not None
        client.release.set()
        await asyncio.gather(first, second)

    asyncio.run(run())

    assert client.max_active == 1
    assert [m.text for m in session.transcript] == [
        "one",
        "Gated reply.",
        "two",
        "Gated reply.",
    ]
    assert [m.text for m in client.requests[1].messages] == [
        "one",
        "Gated reply.",
        "two",
    ]


def test_transcript_is_append_only() -> None:
    transcript = Transcript()
    transcript.append(ConversationMessage.user_text("a"))

    snapshot = transcript.messages
    transcript.append(ConversationMessage.assistant_text("b"))

    assert len(snapshot) == 1
    assert len(transcript) == 2
    assert not hasattr(transcript, "remove")


def test_session_blocked_reply_leaves_transcript_untouched() -> None:
    client = FakeGenerationClient()
    client.queue(GenerationResult(text="", blocked=True, finish_reason="refusal"))
    session = ConversationSession(
        service=ConversationService(client=client, model="chat-model")
    )

    with pytest.raises(ModelBlockedError):
        asyncio.run(session.send("hello"))

    assert len(session.transcript) == 0
