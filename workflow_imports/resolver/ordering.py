"""
ordering.py - Topological ordering of imported files.

Dependencies come before the files that import them. Ties are broken by
discovery order so the output is deterministic; files caught in a cycle
are appended in discovery order.
"""

from __future__ import annotations

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


def topological_order(files: List[str], edges: Dict[str, List[str]]) -> List[str]:
    """Order files so that every import precedes its importer.

    Args:
        files: Files in discovery order.
        edges: importer -> imported files.

    Returns:
        Files ordered dependencies-first.
    """
    position = {f: i for i, f in enumerate(files)}
    pending = {f: 0 for f in files}
    dependents: Dict[str, List[str]] = {f: [] for f in files}

    for importer, imported in edges.items():
        if importer not in pending:
            continue
        for dep in imported:
            if dep not in pending or dep == importer:
                continue
            pending[importer] += 1
            dependents[dep].append(importer)

    ready = sorted((f for f in files if pending[f] == 0), key=position.get)
    ordered: List[str] = []
    while ready:
        current = ready.pop(0)
        ordered.append(current)
        for importer in dependents[current]:
            pending[importer] -= 1
            if pending[importer] == 0:
                ready.append(importer)
                ready.sort(key=position.get)

    if len(ordered) < len(files):
        remaining = [f for f in files if f not in ordered]
        logger.debug("Import cycle among %s", remaining)
        ordered.extend(remaining)
    return ordered
