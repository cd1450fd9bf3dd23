__all__ = ["Analyzer", "default_analyzers", "register_analyzer"]

from .base import Analyzer
from .registry import default_analyzers, register_analyzer
