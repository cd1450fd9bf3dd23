__all__ = ["Collector", "default_collectors", "register_collector"]

from .base import Collector
from .registry import default_collectors, register_collector
