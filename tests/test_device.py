import asyncio
import random
import threading

import pytest

from rpslink.exceptions import InvalidRole
from rpslink.game.events import Notification
from rpslink.game.models import Choice, Outcome
from rpslink.services.channel import LoopbackHub
from rpslink.services.device import Device


async def _pair(hub: LoopbackHub, **primary_kwargs) -> tuple[Device, Device]:
    phone = Device.for_role("primary", hub.channel("phone"), **primary_kwargs)
    watch = Device.for_role("peer", hub.channel("watch"))
    await phone.start()
    await watch.start()
    return phone, watch


async def _close(*devices: Device) -> None:
    for d in devices:
        await d.close()


def test_scenario_primary_first_primary_wins(hub, wait_until) -> None:
    async def scenario():
        phone, watch = await _pair(hub)

        phone.controller.submit_choice(Choice.ROCK)
        watch.controller.submit_choice(Choice.SCISSORS)

        await wait_until(lambda: watch.controller.round.outcome is not None)
        assert phone.controller.round.outcome is Outcome.PRIMARY_WINS
        assert watch.controller.round.outcome is Outcome.PRIMARY_WINS
        assert watch.controller.status == "Winner: Phone"
        await _close(phone, watch)

    asyncio.run(scenario())


def test_scenario_peer_first_draw(hub, wait_until) -> None:
    async def scenario():
        phone, watch = await _pair(hub)

        watch.controller.submit_choice(Choice.PAPER)
        await wait_until(lambda: phone.controller.round.remote_choice is not None)
        assert phone.controller.round.outcome is None

        phone.controller.submit_choice(Choice.PAPER)

        await wait_until(lambda: watch.controller.round.outcome is not None)
        assert phone.controller.round.outcome is Outcome.DRAW
        assert watch.controller.round.outcome is Outcome.DRAW
        await _close(phone, watch)

    asyncio.run(scenario())


def test_scenario_reset_after_resolution(hub, wait_until) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        phone.controller.submit_choice(Choice.SCISSORS)
        watch.controller.submit_choice(Choice.ROCK)
        await wait_until(lambda: watch.controller.round.outcome is Outcome.PEER_WINS)

        watch.controller.request_play_again()

        await wait_until(lambda: phone.controller.round.outcome is None)
        for d in (phone, watch):
            assert d.controller.round.accepting_input
            assert d.controller.round.outcome is None
            assert d.controller.round.local_choice is None
        assert phone.controller.round.remote_choice is None
        await _close(phone, watch)

    asyncio.run(scenario())


def test_unknown_command_is_surfaced_not_fatal(hub, wait_until, recorder) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        phone.subscribe(recorder)
        before = phone.snapshot()

        hub.inject("phone", "RPS:FOO")

        await wait_until(lambda: recorder.of(Notification.DIAGNOSTIC))
        assert recorder.of(Notification.DIAGNOSTIC) == [{"command": "RPS:FOO"}]
        assert phone.snapshot() == before
        await _close(phone, watch)

    asyncio.run(scenario())


def test_inbound_commands_run_on_the_owner_thread(hub, wait_until) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        seen = []
        handle = phone.controller.handle_command

        def spy(raw):
            seen.append(threading.get_ident())
            handle(raw)

        phone.controller.handle_command = spy
        watch.controller.submit_choice(Choice.ROCK)

        await wait_until(lambda: seen)
        assert seen == [threading.get_ident()]
        await _close(phone, watch)

    asyncio.run(scenario())


def test_messages_on_other_paths_are_ignored(hub, wait_until, recorder) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        phone.subscribe(recorder)

        hub.inject("phone", "RPS:WATCH:ROCK", path="/telemetry")
        hub.inject("phone", "RPS:FOO")

        # the diagnostic proves the hub got past the earlier delivery
        await wait_until(lambda: recorder.of(Notification.DIAGNOSTIC))
        assert phone.controller.round.remote_choice is None
        await _close(phone, watch)

    asyncio.run(scenario())


def test_paused_device_drops_commands(hub, wait_until) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        await phone.pause()

        watch.controller.submit_choice(Choice.ROCK)
        await watch.drain()
        hub.inject("phone", "RPS:WATCH:ROCK")
        await asyncio.get_running_loop().run_in_executor(None, hub.flush)

        assert phone.controller.round.remote_choice is None
        assert not phone.snapshot()["attached"]

        await phone.resume()
        # the earlier choice is gone for good; the round only moves after a reset
        watch.controller.request_reset()
        await wait_until(lambda: phone.controller.round.accepting_input and watch.controller.round.accepting_input)
        watch.controller.submit_choice(Choice.PAPER)
        await wait_until(lambda: phone.controller.round.remote_choice is Choice.PAPER)
        await _close(phone, watch)

    asyncio.run(scenario())


def test_lost_result_stalls_until_reset(wait_until) -> None:
    async def scenario():
        hub = LoopbackHub(loss=1.0, rng=random.Random(7))
        try:
            phone, watch = await _pair(hub)
            watch.controller.submit_choice(Choice.ROCK)
            await watch.drain()
            # the watch's choice is lost too; hand it to the phone directly
            phone.controller.on_peer_choice(Choice.ROCK)
            phone.controller.submit_choice(Choice.ROCK)
            await phone.drain()

            assert phone.controller.round.outcome is Outcome.DRAW
            assert watch.controller.round.outcome is None
            assert watch.snapshot()["phase"] == "AWAITING_RESULT"

            hub.loss = 0.0
            phone.controller.request_reset()
            await wait_until(lambda: watch.snapshot()["phase"] == "IDLE")
            assert watch.controller.round.accepting_input
            await _close(phone, watch)
        finally:
            hub.close()

    asyncio.run(scenario())


def test_unknown_role_is_rejected(hub) -> None:
    with pytest.raises(InvalidRole):
        Device.for_role("referee", hub.channel("tv"))


def test_snapshot_reports_device_and_phase(hub) -> None:
    async def scenario():
        phone, watch = await _pair(hub, wait_for_peer=True)
        snap = phone.snapshot()
        assert snap["device_id"] == "phone"
        assert snap["role"] == "primary"
        assert snap["phase"] == "IDLE"
        assert snap["attached"] is True
        assert snap["accepting_input"] is False
        await _close(phone, watch)

    asyncio.run(scenario())


def test_unsubscribed_listener_hears_nothing(hub, recorder) -> None:
    async def scenario():
        phone, watch = await _pair(hub)
        unsubscribe = phone.subscribe(recorder)
        unsubscribe()

        phone.controller.submit_choice(Choice.ROCK)

        assert recorder.events == []
        await _close(phone, watch)

    asyncio.run(scenario())
