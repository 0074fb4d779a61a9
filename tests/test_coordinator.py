"""
Tests for the turn-taking coordinator.
"""

import asyncio

import pytest

from agent_demos.conversation.coordinator import ConversationState, TurnCoordinator
from agent_demos.conversation.errors import (
    ConversationBusy,
    ConversationClosed,
    InvalidMessage,
    ParticipantFailure,
    PolicyError,
)
from agent_demos.conversation.messages import ConversationLog, Message, Role
from agent_demos.conversation.participant import Participant, ScriptedParticipant
from agent_demos.conversation.termination import (
    AnyOf,
    ContentMatch,
    IterationCap,
    RoleRestricted,
    TerminationPolicy,
    approval_policy,
)
from agent_demos.observability.event_logger import EventLogger, EventType


# ── Helpers ──


class MultiMessageParticipant(Participant):
    """Yields ``count`` messages per turn."""

    def __init__(self, name: str, count: int):
        super().__init__(name)
        self.count = count

    async def produce(self, log):
        for i in range(self.count):
            yield Message(role=Role.AGENT, content=f"{self.name} part {i + 1}")


class FailingParticipant(Participant):
    def __init__(self, name: str, error: Exception):
        super().__init__(name)
        self.error = error

    async def produce(self, log):
        raise self.error
        yield  # pragma: no cover


class BlockingParticipant(Participant):
    """Yields one message, then waits until released."""

    def __init__(self, name: str):
        super().__init__(name)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def produce(self, log):
        yield Message.agent("partial", self.name)
        self.started.set()
        await self.release.wait()
        yield Message.agent("rest", self.name)


class RecordingPolicy(TerminationPolicy):
    def __init__(self, stop_after: int):
        self.stop_after = stop_after
        self.calls = []

    def should_stop(self, participant, log):
        self.calls.append((participant.name, len(log)))
        return len(self.calls) >= self.stop_after


class BrokenPolicy(TerminationPolicy):
    def should_stop(self, participant, log):
        raise RuntimeError("predicate exploded")


# ── Construction ──


def test_requires_participants():
    with pytest.raises(ValueError):
        TurnCoordinator([])


def test_rejects_duplicate_names():
    with pytest.raises(ValueError):
        TurnCoordinator([ScriptedParticipant("A", ["x"]), ScriptedParticipant("A", ["y"])])


def test_initial_state_with_seed():
    coordinator = TurnCoordinator(
        [ScriptedParticipant("A", ["x"])], seed=[Message.user("hello")]
    )
    assert coordinator.state == ConversationState.IDLE
    assert len(coordinator.log) == 1
    assert not coordinator.is_complete


def test_uses_given_log():
    log = ConversationLog([Message.user("hi")])
    coordinator = TurnCoordinator([ScriptedParticipant("A", ["x"])], log=log)
    assert coordinator.log is log


# ── Turn taking ──


@pytest.mark.asyncio
async def test_round_robin_fairness():
    participants = [ScriptedParticipant(name, [name]) for name in ("A", "B", "C")]
    coordinator = TurnCoordinator(participants, policy=IterationCap(7))

    result = await coordinator.run()

    authors = [m.author for m in result.messages]
    assert authors == ["A", "B", "C", "A", "B", "C", "A"]
    assert [m.turn for m in result.messages] == list(range(1, 8))
    assert result.turns == 7
    assert not result.is_complete


@pytest.mark.asyncio
async def test_log_growth_accounts_for_every_message():
    coordinator = TurnCoordinator(
        [MultiMessageParticipant("A", 2), MultiMessageParticipant("B", 1), MultiMessageParticipant("C", 3)],
        policy=IterationCap(6),
        seed=[Message.user("start")],
    )

    result = await coordinator.run()

    # two rounds of 2 + 1 + 3 messages on top of the seed
    assert len(result.messages) == 1 + 2 * (2 + 1 + 3)
    assert [m.content for m in result.messages[1:3]] == ["A part 1", "A part 2"]


@pytest.mark.asyncio
async def test_messages_are_stamped_with_author_and_turn():
    coordinator = TurnCoordinator([MultiMessageParticipant("Solo", 2)])

    produced = await coordinator.take_turn()

    assert [m.author for m in produced] == ["Solo", "Solo"]
    assert {m.turn for m in produced} == {1}


@pytest.mark.asyncio
async def test_take_turn_with_explicit_participant_keeps_rotation():
    a, b = ScriptedParticipant("A", ["a"]), ScriptedParticipant("B", ["b"])
    coordinator = TurnCoordinator([a, b])

    await coordinator.take_turn(b)
    await coordinator.take_turn()

    assert [m.author for m in coordinator.log] == ["B", "A"]


@pytest.mark.asyncio
async def test_take_turn_rejects_unknown_participant():
    coordinator = TurnCoordinator([ScriptedParticipant("A", ["a"])])

    with pytest.raises(ValueError):
        await coordinator.take_turn(ScriptedParticipant("Stranger", ["hi"]))

    assert len(coordinator.log) == 0
    assert coordinator.turns == 0
    assert coordinator.state == ConversationState.IDLE


@pytest.mark.asyncio
async def test_policy_sees_participant_after_append():
    policy = RecordingPolicy(stop_after=3)
    coordinator = TurnCoordinator(
        [ScriptedParticipant("A", ["a"]), ScriptedParticipant("B", ["b"])],
        policy=policy,
        seed=[Message.user("go")],
    )

    await coordinator.run()

    assert policy.calls == [("A", 2), ("B", 3), ("A", 4)]


@pytest.mark.asyncio
async def test_single_participant_has_no_builtin_exit_keyword():
    coordinator = TurnCoordinator([ScriptedParticipant("Minion", ["bello"])])

    coordinator.add_message(Message.user("exit"))
    await coordinator.take_turn()
    coordinator.add_message(Message.user("exit"))
    await coordinator.take_turn()

    assert not coordinator.is_terminated
    assert len(coordinator.log) == 4


@pytest.mark.asyncio
async def test_invoke_streams_messages():
    coordinator = TurnCoordinator(
        [ScriptedParticipant("A", ["one", "two"])], policy=IterationCap(2)
    )

    contents = [message.content async for message in coordinator.invoke()]

    assert contents == ["one", "two"]


# ── Writer / critic scenario ──


@pytest.mark.asyncio
@pytest.mark.parametrize("approve_at", [1, 2, 4])
async def test_writer_critic_stops_on_approval(approve_at):
    writer = ScriptedParticipant("Writer", [f"draft {i}" for i in range(1, 11)])
    critic_replies = ["Needs more detail."] * (approve_at - 1) + ["Looks great, I APPROVE."]
    critic = ScriptedParticipant("Critic", critic_replies)
    policy = AnyOf(RoleRestricted(ContentMatch("approve"), [critic]), IterationCap(10, [critic]))

    coordinator = TurnCoordinator(
        [writer, critic], policy=policy, seed=[Message.user("Write about Barcelona")]
    )
    result = await coordinator.run()

    assert result.is_complete
    assert len(result.messages) == 1 + 2 * approve_at
    assert result.messages[-1].author == "Critic"
    assert coordinator.state == ConversationState.TERMINATED


@pytest.mark.asyncio
async def test_writer_critic_hits_iteration_cap():
    writer = ScriptedParticipant("Writer", ["draft"])
    critic = ScriptedParticipant("Critic", ["Not yet."])
    policy = AnyOf(RoleRestricted(ContentMatch("approve"), [critic]), IterationCap(3, [critic]))

    result = await TurnCoordinator([writer, critic], policy=policy).run()

    assert result.turns == 6
    assert critic.calls == 3
    assert not result.is_complete
    assert isinstance(result.stop_reason, IterationCap)


class SilentParticipant(Participant):
    """Finishes every turn without saying anything."""

    async def produce(self, log):
        return
        yield  # pragma: no cover


class ReauthoringParticipant(Participant):
    """Yields messages that claim a different author."""

    async def produce(self, log):
        yield Message(role=Role.AGENT, content="Not yet.", author="Reviewer")


@pytest.mark.asyncio
@pytest.mark.parametrize("critic_type", [SilentParticipant, ReauthoringParticipant])
async def test_iteration_cap_counts_every_critic_turn(critic_type):
    writer = ScriptedParticipant("Writer", ["draft"])
    critic = critic_type("Critic")
    coordinator = TurnCoordinator(
        [writer, critic], policy=approval_policy([critic], max_iterations=3)
    )

    for _ in range(10):
        if coordinator.is_terminated:
            break
        await coordinator.take_turn()

    assert coordinator.is_terminated
    assert coordinator.turns == 6
    assert coordinator.log.turns == ("Writer", "Critic") * 3
    assert not coordinator.is_complete


@pytest.mark.asyncio
async def test_committed_messages_carry_the_participant_name():
    coordinator = TurnCoordinator([ReauthoringParticipant("Critic")])

    produced = await coordinator.take_turn()

    assert [m.author for m in produced] == ["Critic"]


@pytest.mark.asyncio
async def test_approval_on_the_capped_turn_is_complete():
    writer = ScriptedParticipant("Writer", ["draft"])
    critic = ScriptedParticipant("Critic", ["Not yet.", "Approve."])
    policy = approval_policy([critic], max_iterations=2)

    result = await TurnCoordinator([writer, critic], policy=policy).run()

    assert result.turns == 4
    assert result.is_complete
    assert isinstance(result.stop_reason, ContentMatch)


# ── Failures ──


@pytest.mark.asyncio
async def test_participant_failure_propagates_and_freezes_log():
    writer = ScriptedParticipant("Writer", ["draft"])
    critic = FailingParticipant("Critic", ParticipantFailure("Critic", "model down"))
    coordinator = TurnCoordinator([writer, critic], seed=[Message.user("go")])

    with pytest.raises(ParticipantFailure):
        await coordinator.run()

    assert len(coordinator.log) == 2
    assert coordinator.is_terminated
    assert not coordinator.is_complete
    assert isinstance(coordinator.result().error, ParticipantFailure)


@pytest.mark.asyncio
async def test_unexpected_error_is_wrapped_as_participant_failure():
    coordinator = TurnCoordinator([FailingParticipant("A", ConnectionError("reset"))])

    with pytest.raises(ParticipantFailure) as excinfo:
        await coordinator.take_turn()

    assert excinfo.value.participant == "A"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_invalid_output_rejects_whole_turn():
    class BadParticipant(Participant):
        async def produce(self, log):
            yield Message.agent("fine", self.name)
            yield Message(role=None, content="broken")

    coordinator = TurnCoordinator([BadParticipant("Bad")], seed=[Message.user("go")])

    with pytest.raises(ParticipantFailure) as excinfo:
        await coordinator.take_turn()

    assert isinstance(excinfo.value.cause, InvalidMessage)
    assert len(coordinator.log) == 1


@pytest.mark.asyncio
async def test_policy_error_is_fatal():
    coordinator = TurnCoordinator([ScriptedParticipant("A", ["x"])], policy=BrokenPolicy())

    with pytest.raises(PolicyError):
        await coordinator.run()

    assert coordinator.is_terminated
    assert len(coordinator.log) == 1


@pytest.mark.asyncio
async def test_terminated_conversation_rejects_more_turns():
    coordinator = TurnCoordinator([ScriptedParticipant("A", ["x"])], policy=IterationCap(1))
    await coordinator.run()

    with pytest.raises(ConversationClosed):
        await coordinator.take_turn()
    with pytest.raises(ConversationClosed):
        coordinator.add_message(Message.user("more"))


# ── Concurrency & cancellation ──


@pytest.mark.asyncio
async def test_cancellation_leaves_log_untouched():
    blocker = BlockingParticipant("Slow")
    coordinator = TurnCoordinator(
        [ScriptedParticipant("Fast", ["hello"]), blocker], seed=[Message.user("go")]
    )
    await coordinator.take_turn()
    before = coordinator.log.snapshot()

    task = asyncio.create_task(coordinator.take_turn())
    await blocker.started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert coordinator.log.snapshot() == before
    assert coordinator.cancelled
    assert coordinator.is_terminated
    assert not coordinator.is_complete
    assert coordinator.result().cancelled


@pytest.mark.asyncio
async def test_concurrent_turn_is_rejected():
    blocker = BlockingParticipant("Slow")
    coordinator = TurnCoordinator([blocker])

    task = asyncio.create_task(coordinator.take_turn())
    await blocker.started.wait()

    with pytest.raises(ConversationBusy):
        await coordinator.take_turn()
    with pytest.raises(ConversationBusy):
        coordinator.add_message(Message.user("interrupt"))

    blocker.release.set()
    produced = await task
    assert [m.content for m in produced] == ["partial", "rest"]


@pytest.mark.asyncio
async def test_independent_conversations_run_concurrently():
    def make():
        return TurnCoordinator(
            [ScriptedParticipant("A", ["a"]), ScriptedParticipant("B", ["b"])],
            policy=IterationCap(4),
        )

    first, second = make(), make()
    results = await asyncio.gather(first.run(), second.run())

    assert [len(r.messages) for r in results] == [4, 4]
    assert first.log is not second.log


# ── Events ──


@pytest.mark.asyncio
async def test_turn_events_are_logged():
    events = EventLogger("run")
    coordinator = TurnCoordinator(
        [ScriptedParticipant("A", ["a"])],
        policy=IterationCap(2),
        event_logger=events,
        conversation_id="demo",
    )
    await coordinator.run()

    assert len(events.get_events(event_type=EventType.TURN_START)) == 2
    assert len(events.get_events(event_type=EventType.TURN_END)) == 2
    end = events.get_events(event_type=EventType.CONVERSATION_END)
    assert len(end) == 1
    assert end[0].payload["is_complete"] is False
    assert end[0].payload["stop_reason"].startswith("IterationCap")
    assert end[0].conversation_id == "demo"
