# Importing the models registers them on Base.metadata (Alembic, create_tables)
from mindsync.models.emotion import EmotionReading
from mindsync.models.meditation import MeditationSession
from mindsync.models.user import User

__all__ = ["EmotionReading", "MeditationSession", "User"]
