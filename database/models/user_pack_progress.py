# database/models/user_pack_progress.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, String
from database.base import Base


class UserPackProgress(Base):
    """Накопление юнитов пачки и pity-счётчик"""

    __tablename__ = "user_pack_progress"

    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    pack_id = Column(String, primary_key=True)

    fractional_units = Column(Integer, default=0, nullable=False)
    last_unit_ts = Column(DateTime, nullable=False)  # якорь накопления
    pity_counter = Column(Integer, default=0, nullable=False)
    last_pack_claim_ts = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<UserPackProgress {self.user_id}/{self.pack_id} units={self.fractional_units}>"
