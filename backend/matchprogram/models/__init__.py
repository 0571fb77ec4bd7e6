from matchprogram.models.check_in import CheckIn
from matchprogram.models.court import Court
from matchprogram.models.match import Match
from matchprogram.models.match_player import MatchPlayer
from matchprogram.models.player import Category, Gender, Player
from matchprogram.models.training_session import TrainingSession

__all__ = [
    "Player",
    "Gender",
    "Category",
    "TrainingSession",
    "CheckIn",
    "Court",
    "Match",
    "MatchPlayer",
]
