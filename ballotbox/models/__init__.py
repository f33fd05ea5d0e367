from ballotbox.models.ballot import Ballot
from ballotbox.models.voter import Voter

__all__ = [
    "Ballot",
    "Voter",
]
