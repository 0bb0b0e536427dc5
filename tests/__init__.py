# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from pool_manager.models.match import Match  # noqa: F401
from pool_manager.models.player import Player  # noqa: F401
from pool_manager.models.tournament import Tournament  # noqa: F401
