"""
Conversion routing over a loaded Catalog.

Every query is a pure function of (catalog, ids). Unknown ids, empty ids
and a catalog that has not been loaded yet all produce empty results; no
query raises for unresolvable input.
"""

from typing import Optional

from points_engine.catalog import Catalog
from points_engine.models import (
    BonusRate,
    Conversion,
    FlatRate,
    InboundRoute,
    OutboundRoute,
    RateTerms,
    Route,
    TransferSummary,
)


def effective_rate(terms: RateTerms) -> float:
    """
    Return the rate currently in force for a set of rate terms.

    Args:
        terms: FlatRate or BonusRate (a Conversion is accepted too)

    Returns:
        bonus_rate for a BonusRate, rate for a FlatRate

    Example:
        >>> effective_rate(BonusRate(rate=1.0, bonus_rate=1.3))
        1.3
    """
    if isinstance(terms, Conversion):
        terms = terms.terms
    if isinstance(terms, BonusRate):
        return terms.bonus_rate
    if isinstance(terms, FlatRate):
        return terms.rate
    raise TypeError(f"Unsupported rate terms: {type(terms).__name__}")


def route_rate(first: Conversion, second: Conversion) -> float:
    return effective_rate(first) * effective_rate(second)


def find_direct_conversion(catalog: Optional[Catalog], from_id: str, to_id: str) -> Optional[Conversion]:
    """
    Return the conversion from `from_id` to `to_id`, or None.

    When duplicate edges exist the first one in catalog order wins.
    """
    if catalog is None or not from_id or not to_id:
        return None
    for conversion in catalog.outgoing(from_id):
        if conversion.to_id == to_id:
            return conversion
    return None


def find_multi_step_conversions(catalog: Optional[Catalog], from_id: str, to_id: str) -> list[Route]:
    """
    Enumerate every two-edge route from `from_id` to `to_id`.

    One route is produced per edge leaving `from_id` whose destination has an
    edge to `to_id`; routes follow the order of edges leaving `from_id`. The
    search is purely structural and stops at exactly two hops. Ranking is
    left to the caller.

    Returns:
        List of Route objects (empty when from_id == to_id)

    Example:
        >>> routes = find_multi_step_conversions(catalog, "amex_mr", "united")
        >>> [r.via for r in routes]
        ['marriott']
    """
    if catalog is None or not from_id or not to_id or from_id == to_id:
        return []

    routes = []
    for first in catalog.outgoing(from_id):
        second = find_direct_conversion(catalog, first.to_id, to_id)
        if second is not None:
            routes.append(Route(steps=(first, second), total_rate=route_rate(first, second)))
    return routes


def get_reachable_programs(catalog: Optional[Catalog], from_id: str) -> set[str]:
    """
    Return ids reachable from `from_id` in one or two hops.

    `from_id` itself appears only if the data contains a cycle back to it.
    """
    if catalog is None or not from_id:
        return set()

    reachable = set()
    for first in catalog.outgoing(from_id):
        reachable.add(first.to_id)
        for second in catalog.outgoing(first.to_id):
            reachable.add(second.to_id)
    return reachable


def get_source_programs(catalog: Optional[Catalog], to_id: str) -> set[str]:
    """Return ids from which `to_id` is reachable in one or two hops."""
    if catalog is None or not to_id:
        return set()

    sources = set()
    for last in catalog.incoming(to_id):
        sources.add(last.from_id)
        for first in catalog.incoming(last.from_id):
            sources.add(first.from_id)
    return sources


def get_transfers_from(catalog: Optional[Catalog], from_id: str) -> TransferSummary:
    """
    Split everything leaving `from_id` into direct edges and two-step routes.

    Each two-step route carries its final destination as `to_id`. Unlike
    find_multi_step_conversions, every second-hop edge is listed, so
    duplicate edges show up as separate routes.
    """
    if catalog is None or not from_id:
        return TransferSummary()

    direct = list(catalog.outgoing(from_id))
    two_step: list[Route] = []
    for first in direct:
        for second in catalog.outgoing(first.to_id):
            two_step.append(
                OutboundRoute(
                    steps=(first, second),
                    total_rate=route_rate(first, second),
                    to_id=second.to_id,
                )
            )
    return TransferSummary(direct=direct, two_step=two_step)


def get_transfers_to(catalog: Optional[Catalog], to_id: str) -> TransferSummary:
    """
    Split everything arriving at `to_id` into direct edges and two-step routes.

    Each two-step route carries its origin as `from_id`.
    """
    if catalog is None or not to_id:
        return TransferSummary()

    direct = list(catalog.incoming(to_id))
    two_step: list[Route] = []
    for last in direct:
        for first in catalog.incoming(last.from_id):
            two_step.append(
                InboundRoute(
                    steps=(first, last),
                    total_rate=route_rate(first, last),
                    from_id=first.from_id,
                )
            )
    return TransferSummary(direct=direct, two_step=two_step)
