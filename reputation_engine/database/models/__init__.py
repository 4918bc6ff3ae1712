"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from reputation_engine.database.models.user_game_state import UserGameStateRecord

__all__ = ["UserGameStateRecord"]
