# dag.py
from __future__ import annotations

from typing import Dict, List, Sequence, Set, Tuple

from .config import BuildConfig
from .model import Recipe


def build_dag(recipes: Sequence[Recipe]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from Recipe objects.

    Requires:
      - recipe.name: str (unique)
      - recipe.needs: names of recipes whose distribution must exist BEFORE this one
    """
    names = [r.name for r in recipes]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate recipe names found: {dupes}")

    name_set = set(names)
    adj: Dict[str, Set[str]] = {n: set() for n in name_set}
    indeg: Dict[str, int] = {n: 0 for n in name_set}

    for recipe in recipes:
        for need in recipe.needs:
            if need not in name_set:
                raise ValueError(
                    f"Recipe '{recipe.name}' needs missing recipe '{need}'. "
                    f"Known recipes: {sorted(name_set)}"
                )
            # Edge need -> recipe.name (need must be built first)
            if recipe.name not in adj[need]:
                adj[need].add(recipe.name)
                indeg[recipe.name] += 1

    return adj, indeg


def validate_order(recipes: Sequence[Recipe]) -> None:
    """
    The table is run top to bottom, there is no scheduling: make sure it is
    already a valid topological order.
    """
    build_dag(recipes)
    seen: Set[str] = set()
    for recipe in recipes:
        late = [n for n in recipe.needs if n not in seen]
        if late:
            raise ValueError(
                f"Recipe '{recipe.name}' is listed before what it needs: {late}"
            )
        seen.add(recipe.name)


def disabled_needs(recipes: Sequence[Recipe], config: BuildConfig) -> Dict[str, List[str]]:
    """Enabled recipes mapped to the needs that are switched off in `config`."""
    out: Dict[str, List[str]] = {}
    for recipe in recipes:
        if not config.is_enabled(recipe.name):
            continue
        missing = [n for n in recipe.needs if not config.is_enabled(n)]
        if missing:
            out[recipe.name] = missing
    return out
