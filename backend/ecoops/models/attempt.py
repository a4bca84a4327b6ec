from datetime import datetime
from sqlalchemy import String, DateTime, Integer, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ecoops.database import Base


class Attempt(Base):
    """A scored attempt, keyed by the player id from the auth provider."""
    __tablename__ = "attempts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    player_id: Mapped[str] = mapped_column(String(128), index=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    crop: Mapped[str] = mapped_column(String(100))
    points_earned: Mapped[int] = mapped_column(Integer)
    quiz_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    difficulty: Mapped[int] = mapped_column(Integer)
    sliders: Mapped[dict] = mapped_column(JSON)  # Raw slider settings
    symptoms: Mapped[list] = mapped_column(JSON)
    scenario_type: Mapped[str] = mapped_column(String(32), default="generated")

    def to_record(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "crop": self.crop,
            "points_earned": self.points_earned,
            "quiz_correct": self.quiz_correct,
            "difficulty": self.difficulty,
            "sliders": self.sliders,
            "symptoms": self.symptoms,
            "scenario_type": self.scenario_type,
        }
