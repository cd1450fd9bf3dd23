from __future__ import annotations

from typing import Dict, Optional

from sentinel.collectors.base import Collector
from sentinel.plugins import discover_modules
from sentinel.shell import CommandRunner


_COLLECTOR_TYPES: Dict[str, type[Collector]] = {}


def register_collector(collector_cls: type[Collector]) -> type[Collector]:
    if not collector_cls.module:
        raise ValueError(f"{collector_cls.__name__} does not declare a module name")
    _COLLECTOR_TYPES.setdefault(collector_cls.module, collector_cls)
    return collector_cls


def default_collectors(runner: Optional[CommandRunner] = None) -> Dict[str, Collector]:
    discover_modules(__name__.rsplit(".", 1)[0])
    runner = runner or CommandRunner()
    return {name: cls(runner) for name, cls in _COLLECTOR_TYPES.items()}
