"""
Wire codec for the commands exchanged between the two devices.

Commands are plain colon-delimited text:

    RPS:PHONE:<CHOICE>     primary's choice (informational)
    RPS:WATCH:<CHOICE>     peer's choice
    RPS:RESULT:<WINNER>    PHONE | WATCH | DRAW, from the primary's resolution
    RPS:RESET              back to a fresh round

There is no version field. Anything else parses to an UNKNOWN command that
keeps the raw text so it can be surfaced as a diagnostic.
"""
from __future__ import annotations

from dataclasses import dataclass

from rpslink.exceptions import ProtocolError
from rpslink.game.events import CommandKind
from rpslink.game.models import Choice, Outcome


PHONE_PREFIX = "RPS:PHONE:"
WATCH_PREFIX = "RPS:WATCH:"
RESULT_PREFIX = "RPS:RESULT:"
RESET = "RPS:RESET"

RESULT_TOKENS = {
    Outcome.PRIMARY_WINS: "PHONE",
    Outcome.PEER_WINS: "WATCH",
    Outcome.DRAW: "DRAW",
}
_OUTCOMES = {token: outcome for outcome, token in RESULT_TOKENS.items()}


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    choice: Choice | None = None
    outcome: Outcome | None = None
    raw: str = ""

    @classmethod
    def phone_choice(cls, choice: Choice) -> Command:
        return cls(CommandKind.PHONE_CHOICE, choice=choice)

    @classmethod
    def watch_choice(cls, choice: Choice) -> Command:
        return cls(CommandKind.WATCH_CHOICE, choice=choice)

    @classmethod
    def result(cls, outcome: Outcome) -> Command:
        return cls(CommandKind.RESULT, outcome=outcome)

    @classmethod
    def reset(cls) -> Command:
        return cls(CommandKind.RESET)


def encode(cmd: Command) -> str:
    if cmd.kind is CommandKind.PHONE_CHOICE and cmd.choice is not None:
        return PHONE_PREFIX + cmd.choice.value
    if cmd.kind is CommandKind.WATCH_CHOICE and cmd.choice is not None:
        return WATCH_PREFIX + cmd.choice.value
    if cmd.kind is CommandKind.RESULT and cmd.outcome is not None:
        return RESULT_PREFIX + RESULT_TOKENS[cmd.outcome]
    if cmd.kind is CommandKind.RESET:
        return RESET
    raise ProtocolError(f"{cmd.kind.name} command has no wire form", raw=cmd.raw or None)


def parse(raw: str) -> Command:
    """Decode a wire string. Never raises; see parse_strict for that."""
    try:
        return parse_strict(raw)
    except ProtocolError:
        return Command(CommandKind.UNKNOWN, raw=raw if isinstance(raw, str) else repr(raw))


def parse_strict(raw: str) -> Command:
    if not isinstance(raw, str):
        raise ProtocolError("command must be text", raw=repr(raw))

    if raw == RESET:
        return Command(CommandKind.RESET, raw=raw)
    if raw.startswith(PHONE_PREFIX):
        return Command(CommandKind.PHONE_CHOICE, choice=_choice(raw, PHONE_PREFIX), raw=raw)
    if raw.startswith(WATCH_PREFIX):
        return Command(CommandKind.WATCH_CHOICE, choice=_choice(raw, WATCH_PREFIX), raw=raw)
    if raw.startswith(RESULT_PREFIX):
        token = raw[len(RESULT_PREFIX):]
        if token not in _OUTCOMES:
            raise ProtocolError(f"unknown result token {token!r}", raw=raw)
        return Command(CommandKind.RESULT, outcome=_OUTCOMES[token], raw=raw)

    raise ProtocolError("unrecognised command", raw=raw)


def _choice(raw: str, prefix: str) -> Choice:
    token = raw[len(prefix):]
    try:
        return Choice(token)
    except ValueError:
        raise ProtocolError(f"unknown choice {token!r}", raw=raw) from None
