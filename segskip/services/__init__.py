from .cache import CacheService
from .dearrow import DeArrowClient
from .options import OptionsStore
from .sponsorblock import SponsorBlockClient
from .user_id import UserIdStore

__all__ = ["CacheService", "DeArrowClient", "OptionsStore", "SponsorBlockClient", "UserIdStore"]
