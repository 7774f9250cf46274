from .base import DeliveryError, NotifierSink
from .bot_api import TelegramNotifierSink

__all__ = ["DeliveryError", "NotifierSink", "TelegramNotifierSink"]
