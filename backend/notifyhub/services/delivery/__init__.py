from notifyhub.services.delivery.base import DeliveryChannel, DigestChannel
from notifyhub.services.delivery.email import EmailRelayChannel
from notifyhub.services.delivery.in_app import InAppPushChannel

__all__ = [
    "DeliveryChannel",
    "DigestChannel",
    "EmailRelayChannel",
    "InAppPushChannel",
]
