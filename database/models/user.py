# database/models/user.py
import uuid

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from database.base import Base


class User(Base):
    """Игрок: гость (id выдаёт клиент) или зарегистрированный (external_id)"""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String, unique=True, index=True, nullable=True)
    is_guest = Column(Boolean, default=True, nullable=False)

    # Время
    created_at = Column(DateTime, server_default=func.now())
    last_active_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<User {self.id} guest={self.is_guest}>"
