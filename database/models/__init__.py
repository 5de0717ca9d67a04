# database/models/__init__.py
from database.models.user import User
from database.models.user_mask import UserMask
from database.models.user_pack_progress import UserPackProgress
from database.models.pack_opening import PackOpen, PackOpenPull
from database.models.event import Event

__all__ = [
    'User',
    'UserMask',
    'UserPackProgress',
    'PackOpen',
    'PackOpenPull',
    'Event',
]
