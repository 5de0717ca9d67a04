# database/models/user_mask.py
import uuid

from sqlalchemy import Column, Integer, ForeignKey, DateTime, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship
from database.base import Base


class UserMask(Base):
    """Маска в коллекции игрока"""

    __tablename__ = "user_masks"
    __table_args__ = (UniqueConstraint("user_id", "mask_id", name="uq_user_masks_user_mask"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    mask_id = Column(String, nullable=False)

    # Прогресс
    owned_count = Column(Integer, default=0, nullable=False)
    essence = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)

    # Экипировка и цвета
    equipped_slot = Column(String, default="NONE", nullable=False)  # NONE, TOA, TURAGA
    unlocked_colors = Column(JSON, default=list)
    equipped_color = Column(String, nullable=True)

    last_acquired_at = Column(DateTime, nullable=True)

    # Отношения
    user = relationship("User", backref="masks")

    def __repr__(self):
        return f"<UserMask {self.mask_id} user={self.user_id} Lvl:{self.level}>"
