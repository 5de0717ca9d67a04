# database/models/pack_opening.py
import uuid

from sqlalchemy import Column, Integer, ForeignKey, DateTime, JSON, String, Boolean, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.base import Base


class PackOpen(Base):
    """Открытие пачки; (user_id, client_request_id) - ключ идемпотентности"""

    __tablename__ = "pack_opens"
    __table_args__ = (
        UniqueConstraint("user_id", "client_request_id", name="uq_pack_opens_user_request"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pack_id = Column(String, nullable=False)
    client_request_id = Column(String, nullable=False)

    seed = Column(String, nullable=False)  # для аудита и отладки
    pity_counter_after = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    # Отношения
    pulls = relationship("PackOpenPull", backref="pack_open", order_by="PackOpenPull.idx")

    def __repr__(self):
        return f"<PackOpen #{self.id} {self.pack_id} key={self.client_request_id}>"


class PackOpenPull(Base):
    """Снимок одного броска для повторной выдачи результата"""

    __tablename__ = "pack_open_pulls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pack_open_id = Column(String(36), ForeignKey("pack_opens.id", ondelete="CASCADE"), nullable=False, index=True)
    idx = Column(Integer, nullable=False)

    mask_id = Column(String, nullable=False)
    rarity = Column(String, nullable=False)
    color = Column(String, nullable=False)
    is_new = Column(Boolean, nullable=False)
    was_color_new = Column(Boolean, nullable=False)

    essence_awarded = Column(Integer, nullable=False)
    essence_remaining = Column(Integer, nullable=False)
    final_essence_remaining = Column(Integer, nullable=False)
    level_before = Column(Integer, nullable=False)
    level_after = Column(Integer, nullable=False)
    final_level_after = Column(Integer, nullable=False)
    unlocked_colors = Column(JSON, default=list)

    def __repr__(self):
        return f"<PackOpenPull {self.pack_open_id}[{self.idx}] {self.mask_id}>"
