from __future__ import annotations

from typing import Dict

from sentinel.analyzers.base import Analyzer
from sentinel.plugins import discover_modules


_ANALYZER_TYPES: Dict[str, type[Analyzer]] = {}


def register_analyzer(analyzer_cls: type[Analyzer]) -> type[Analyzer]:
    if not analyzer_cls.module:
        raise ValueError(f"{analyzer_cls.__name__} does not declare a module name")
    _ANALYZER_TYPES.setdefault(analyzer_cls.module, analyzer_cls)
    return analyzer_cls


def default_analyzers() -> Dict[str, Analyzer]:
    discover_modules(__name__.rsplit(".", 1)[0])
    return {name: cls() for name, cls in _ANALYZER_TYPES.items()}
