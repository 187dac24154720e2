from rpslink.game.models import Choice, Outcome


beats = {
    Choice.PAPER: Choice.ROCK,
    Choice.ROCK: Choice.SCISSORS,
    Choice.SCISSORS: Choice.PAPER,
}


def judge(primary: Choice, peer: Choice) -> Outcome:
    """Resolve a round; arguments are always (primary, peer)."""
    if primary == peer:
        return Outcome.DRAW
    return Outcome.PRIMARY_WINS if beats[primary] == peer else Outcome.PEER_WINS
