from enum import Enum
from dataclasses import dataclass


class Choice(Enum):
    ROCK = "ROCK"
    PAPER = "PAPER"
    SCISSORS = "SCISSORS"

    @staticmethod
    def from_input(s: str) -> "Choice | None":
        s = (s or "").strip().lower()
        if s in ("r", "rock"):
            return Choice.ROCK
        if s in ("p", "paper"):
            return Choice.PAPER
        if s in ("s", "scissors"):
            return Choice.SCISSORS
        return None


class Outcome(Enum):
    PRIMARY_WINS = "PRIMARY_WINS"
    PEER_WINS = "PEER_WINS"
    DRAW = "DRAW"


class Role(Enum):
    PRIMARY = "primary"
    PEER = "peer"


@dataclass
class Round:
    local_choice: Choice | None = None
    # only ever populated on the primary
    remote_choice: Choice | None = None
    outcome: Outcome | None = None
    accepting_input: bool = True

    def reset(self, accepting_input: bool = True) -> None:
        self.local_choice = None
        self.remote_choice = None
        self.outcome = None
        self.accepting_input = accepting_input

    def view(self) -> dict:
        return {
            "local_choice": self.local_choice.value if self.local_choice else None,
            "remote_choice": self.remote_choice.value if self.remote_choice else None,
            "outcome": self.outcome.value if self.outcome else None,
            "accepting_input": self.accepting_input,
        }
