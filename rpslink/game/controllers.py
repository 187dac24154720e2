"""
Round controllers for the two roles.

Both controllers are plain synchronous state machines over a single Round. They
never touch the transport directly: outbound commands go through the injected
``send`` callable (fire-and-forget) and presentation updates go through
``emit(notification, data)``. All calls must come from the device's owner
context; the Device runtime is responsible for marshalling inbound commands
onto it.
"""
from __future__ import annotations

import logging
from typing import Callable

from rpslink.game.events import CommandKind, Notification
from rpslink.game.models import Choice, Outcome, Role, Round
from rpslink.game.protocol import Command, encode, parse
from rpslink.game.rules import judge
from rpslink.game.states import phase_of

logger = logging.getLogger(__name__)

SendFn = Callable[[str], None]
EmitFn = Callable[[Notification, dict], None]

RESULT_TEXT = {
    Outcome.PRIMARY_WINS: "Winner: Phone",
    Outcome.PEER_WINS: "Winner: Watch",
    Outcome.DRAW: "Draw",
}


class RoundController:
    role: Role

    def __init__(self, send: SendFn | None = None, emit: EmitFn | None = None) -> None:
        self.round = Round(accepting_input=self._input_after_reset())
        self.status: str = self._status_after_reset()
        self.send: SendFn = send or (lambda _raw: None)
        self.emit: EmitFn = emit or (lambda _type, _data: None)
        self._table: dict[CommandKind, Callable[[Command], None]] = {
            CommandKind.RESET: lambda _cmd: self.on_reset_requested(local=False),
            CommandKind.UNKNOWN: self._on_unknown,
        }

    # --------- presentation -> core ---------

    def submit_choice(self, choice: Choice) -> bool:
        raise NotImplementedError

    def request_reset(self) -> None:
        self.on_reset_requested(local=True)

    def request_play_again(self) -> None:
        self.on_reset_requested(local=True)

    # --------- channel -> core ---------

    def handle_command(self, raw: str) -> None:
        cmd = parse(raw)
        logger.debug("%s <- %s", self.role.value, raw)
        handler = self._table.get(cmd.kind)
        if handler is None:
            logger.debug("%s ignores %s", self.role.value, cmd.kind.name)
            return
        handler(cmd)

    def on_reset_requested(self, local: bool = False) -> None:
        logger.info("%s round reset (%s)", self.role.value, "local" if local else "remote")
        self.round.reset(accepting_input=self._input_after_reset())
        self.status = self._status_after_reset()
        # always re-announce so the presentation redraws from scratch
        self.emit(Notification.INPUT_ENABLED_CHANGED, {"enabled": self.round.accepting_input})
        self.emit(Notification.STATUS_CHANGED, {"text": self.status})
        if local:
            self._send(Command.reset())

    # --------- views ---------

    def snapshot(self) -> dict:
        return {
            "role": self.role.value,
            "phase": phase_of(self.round, self.role).name,
            "status": self.status,
            **self.round.view(),
        }

    # --------- helpers ---------

    def _input_after_reset(self) -> bool:
        return True

    def _status_after_reset(self) -> str:
        return ""

    def _send(self, cmd: Command) -> None:
        raw = encode(cmd)
        logger.debug("%s -> %s", self.role.value, raw)
        self.send(raw)

    def _set_status(self, text: str) -> None:
        if text == self.status:
            return
        self.status = text
        self.emit(Notification.STATUS_CHANGED, {"text": text})

    def _set_input(self, enabled: bool) -> None:
        if enabled == self.round.accepting_input:
            return
        self.round.accepting_input = enabled
        self.emit(Notification.INPUT_ENABLED_CHANGED, {"enabled": enabled})

    def _on_unknown(self, cmd: Command) -> None:
        logger.warning("%s got unrecognised command %r", self.role.value, cmd.raw)
        self.emit(Notification.DIAGNOSTIC, {"command": cmd.raw})

    def _announce_result(self) -> None:
        outcome = self.round.outcome
        self._set_status(RESULT_TEXT[outcome])
        self.emit(Notification.RESULT_AVAILABLE, {
            "outcome": outcome.value,
            "local_choice": self.round.local_choice.value if self.round.local_choice else None,
            "remote_choice": self.round.remote_choice.value if self.round.remote_choice else None,
        })


class PrimaryController(RoundController):
    """
    Phone side. Sole owner of resolution: collects both choices, judges the
    round and broadcasts the outcome to the peer.
    """

    role = Role.PRIMARY

    def __init__(
        self,
        send: SendFn | None = None,
        emit: EmitFn | None = None,
        *,
        send_phone_choice: bool = True,
        wait_for_peer: bool = False,
    ) -> None:
        self.send_phone_choice = send_phone_choice
        self.wait_for_peer = wait_for_peer
        super().__init__(send=send, emit=emit)
        self._table[CommandKind.WATCH_CHOICE] = lambda cmd: self.on_peer_choice(cmd.choice)

    def submit_choice(self, choice: Choice) -> bool:
        if not self.round.accepting_input:
            logger.debug("primary input disabled, dropping %s", choice.name)
            return False

        logger.info("primary chose %s", choice.name)
        self.round.local_choice = choice
        self._set_input(False)
        self._set_status("Computing winner…")
        if self.send_phone_choice:
            # informational only, the peer does not act on it
            self._send(Command.phone_choice(choice))
        self._resolve()
        return True

    def on_peer_choice(self, choice: Choice) -> None:
        current = self.round.remote_choice
        if current is not None and current != choice:
            logger.warning("peer already chose %s this round, ignoring %s", current.name, choice.name)
            return

        self.round.remote_choice = choice
        if self.round.local_choice is None and self.round.outcome is None:
            self._set_status("Now choose on the phone…")
            self._set_input(True)
        self._resolve()

    def _resolve(self) -> None:
        rnd = self.round
        if rnd.local_choice is None or rnd.remote_choice is None or rnd.outcome is not None:
            return

        rnd.outcome = judge(rnd.local_choice, rnd.remote_choice)
        logger.info(
            "round resolved: %s vs %s -> %s",
            rnd.local_choice.name, rnd.remote_choice.name, rnd.outcome.name,
        )
        self._set_input(False)
        self._announce_result()
        self._send(Command.result(rnd.outcome))

    def _input_after_reset(self) -> bool:
        return not self.wait_for_peer

    def _status_after_reset(self) -> str:
        return "Waiting for the watch…" if self.wait_for_peer else "Choose your move"


class PeerController(RoundController):
    """Watch side. Submits a choice and mirrors whatever result the primary announces."""

    role = Role.PEER

    def __init__(self, send: SendFn | None = None, emit: EmitFn | None = None) -> None:
        super().__init__(send=send, emit=emit)
        self._table[CommandKind.RESULT] = lambda cmd: self.on_result(cmd.outcome)

    def submit_choice(self, choice: Choice) -> bool:
        if not self.round.accepting_input:
            logger.debug("peer input disabled, dropping %s", choice.name)
            return False

        logger.info("peer chose %s", choice.name)
        self.round.local_choice = choice
        self._set_input(False)
        self._set_status("Sent…")
        self._send(Command.watch_choice(choice))
        return True

    def on_result(self, outcome: Outcome) -> None:
        if self.round.outcome == outcome:
            logger.debug("duplicate result %s", outcome.name)
            return

        if self.round.local_choice is None:
            logger.info("result %s arrived before a local choice", outcome.name)
        self.round.outcome = outcome
        self._set_input(False)
        self._announce_result()
