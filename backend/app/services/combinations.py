"""Table-combination suggestions for a party.

Tiers are evaluated in order and the first one that yields anything wins:

* preferred + exact: curated capacity patterns for the party size, merged
  with every single table and every 2..K table set whose capacity equals the
  party exactly.
* nearest: the smallest single table larger than the party, all ties.
* fallback: 2..K tables whose summed capacity covers the party.

Every combination records the tier that produced it so callers can tell an
exact fit from a substitute.
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from itertools import combinations

from backend.app.services.availability import available_tables
from backend.app.services.types import Combination, ComboRule, Table

logger = logging.getLogger(__name__)

DEFAULT_MAX_TABLES = 4
DEFAULT_MAX_OPTIONS = 50

# Standard floor groupings per party size, most preferred first.
PREFERRED_PATTERNS: dict[int, tuple[tuple[int, ...], ...]] = {
    1: ((2,),),
    2: ((2,),),
    3: ((4,),),
    4: ((2, 2), (4,)),
    5: ((4, 2), (6,)),
    6: ((4, 2), (6,)),
    7: ((4, 4), (6, 2), (8,)),
    8: ((4, 4), (6, 2), (8,)),
    9: ((4, 4, 2), (6, 4), (8, 2), (10,)),
    10: ((6, 4), (4, 4, 2), (10,)),
    11: ((6, 4, 2), (8, 4), (10, 2)),
    12: ((6, 6), (4, 4, 4), (8, 4), (10, 2)),
    13: ((6, 4, 4), (8, 4, 2), (10, 4)),
    14: ((6, 4, 4), (8, 6), (10, 4)),
    15: ((10, 4, 2), (8, 4, 4), (6, 4, 4, 2), (8, 6, 2)),
    16: ((4, 4, 4, 4), (8, 8), (10, 6), (8, 4, 4)),
}


def suggest_combinations(
    guests: int,
    tables: Iterable[Table],
    *,
    preferences: Mapping[int, Sequence[Sequence[int]]] = PREFERRED_PATTERNS,
    max_tables: int = DEFAULT_MAX_TABLES,
    max_options: int = DEFAULT_MAX_OPTIONS,
) -> list[Combination]:
    """Rank the table combinations that can seat ``guests``.

    ``tables`` is the set of tables free for the requested slot. The caller
    validates ``guests``; an empty result means no availability.
    """
    # One entry per table id, in display order.
    pool = available_tables({table.id: table for table in tables}.values())
    position = {table.id: index for index, table in enumerate(pool)}

    found: dict[frozenset[int], Combination] = {}
    for combo in _preferred(guests, pool, preferences.get(guests, ()), position):
        found.setdefault(frozenset(combo.table_ids), combo)
    for combo in _exact(guests, pool, max_tables):
        found.setdefault(frozenset(combo.table_ids), combo)
    combos = list(found.values())

    if not combos:
        combos = _nearest_single(guests, pool)
    if not combos:
        combos = _sufficient(guests, pool, max_tables)

    combos.sort(key=lambda combo: _rank(combo, position))
    if combos:
        logger.debug(
            "%d combination(s) for %d guests over %d tables, best tier %s",
            len(combos),
            guests,
            len(pool),
            combos[0].rule.value,
        )
    return combos[:max_options]


def _rank(combo: Combination, position: Mapping[int, int]) -> tuple:
    return (
        len(combo.tables),
        combo.overage,
        combo.total,
        tuple(position[table_id] for table_id in combo.table_ids),
    )


def _preferred(
    guests: int,
    pool: list[Table],
    patterns: Sequence[Sequence[int]],
    position: Mapping[int, int],
) -> list[Combination]:
    # Patterns share one pool: a table claimed by an earlier pattern is not offered again.
    taken: set[int] = set()
    combos = []
    for pattern in patterns:
        if sum(pattern) < guests:
            continue
        picked = _materialize(pattern, pool, taken)
        if picked is None:
            continue
        taken.update(table.id for table in picked)
        picked.sort(key=lambda table: position[table.id])
        combos.append(Combination(tuple(picked), guests, ComboRule.PREFERRED))
    return combos


def _materialize(pattern: Sequence[int], pool: list[Table], taken: set[int]) -> list[Table] | None:
    picked: list[Table] = []
    used = set(taken)
    for capacity in pattern:
        table = next((t for t in pool if t.capacity == capacity and t.id not in used), None)
        if table is None:
            return None
        picked.append(table)
        used.add(table.id)
    return picked


def _exact(guests: int, pool: list[Table], max_tables: int) -> list[Combination]:
    combos = [
        Combination((table,), guests, ComboRule.EXACT)
        for table in pool
        if table.capacity == guests
    ]
    # Capacities are positive, so no table at or above the party size can be part of an exact set.
    smaller = [table for table in pool if table.capacity < guests]
    for size in range(2, max_tables + 1):
        for subset in combinations(smaller, size):
            if sum(table.capacity for table in subset) == guests:
                combos.append(Combination(subset, guests, ComboRule.EXACT))
    return combos


def _nearest_single(guests: int, pool: list[Table]) -> list[Combination]:
    larger = [table for table in pool if table.capacity > guests]
    if not larger:
        return []
    nearest = min(table.capacity for table in larger)
    return [
        Combination((table,), guests, ComboRule.NEAREST)
        for table in larger
        if table.capacity == nearest
    ]


def _sufficient(guests: int, pool: list[Table], max_tables: int) -> list[Combination]:
    combos = []
    for size in range(2, max_tables + 1):
        for subset in combinations(pool, size):
            if sum(table.capacity for table in subset) >= guests:
                combos.append(Combination(subset, guests, ComboRule.FALLBACK))
    return combos
