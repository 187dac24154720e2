from enum import Enum, auto

from rpslink.game.models import Role, Round


class RoundPhase(Enum):
    IDLE = auto()
    AWAITING_PEER = auto()
    AWAITING_LOCAL = auto()
    AWAITING_RESULT = auto()
    RESOLVED = auto()


def phase_of(rnd: Round, role: Role) -> RoundPhase:
    """Derive the display phase of a round; the Round itself stores no phase."""
    if rnd.outcome is not None:
        return RoundPhase.RESOLVED
    if role is Role.PEER:
        return RoundPhase.AWAITING_RESULT if rnd.local_choice is not None else RoundPhase.IDLE

    if rnd.local_choice is not None:
        return RoundPhase.AWAITING_PEER
    if rnd.remote_choice is not None:
        return RoundPhase.AWAITING_LOCAL
    return RoundPhase.IDLE
