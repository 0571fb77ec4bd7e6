# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from matchprogram.models.check_in import CheckIn  # noqa: F401
from matchprogram.models.court import Court  # noqa: F401
from matchprogram.models.match import Match  # noqa: F401
from matchprogram.models.match_player import MatchPlayer  # noqa: F401
from matchprogram.models.player import Player  # noqa: F401
from matchprogram.models.training_session import TrainingSession  # noqa: F401
