# database/models/event.py
import uuid

from sqlalchemy import Column, ForeignKey, DateTime, JSON, String
from database.base import Base


class Event(Base):
    """Журнал действий: mask_pull, pack_open, equip, color_change, pack_trim, starter_grant"""

    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String, nullable=False, index=True)
    payload = Column(JSON, default=dict)
    timestamp = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Event {self.type} user={self.user_id}>"
