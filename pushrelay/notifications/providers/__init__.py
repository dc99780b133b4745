from .expo import ExpoPushClient
from .fcm import FcmPushClient

__all__ = ["ExpoPushClient", "FcmPushClient"]
