from __future__ import annotations

import importlib
import pkgutil
from typing import List, Set


_SKIP_MODULES = frozenset({"__init__", "base", "registry", "utils"})
_DISCOVERED: Set[str] = set()


def discover_modules(package: str) -> List[str]:
    """Import every plugin module of ``package`` once so its register decorator runs.

    Returns the names imported by this call; a package that was already
    discovered yields an empty list.
    """
    if package in _DISCOVERED:
        return []

    pkg = importlib.import_module(package)
    imported: List[str] = []
    for m in pkgutil.iter_modules(getattr(pkg, "__path__", [])):
        if m.name in _SKIP_MODULES:
            continue
        importlib.import_module(f"{package}.{m.name}")
        imported.append(m.name)

    _DISCOVERED.add(package)
    return imported
