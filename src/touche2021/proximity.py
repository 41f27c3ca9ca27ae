"""
Proximity query construction.

Builds the near-match part of a field query: pairs of title terms that should
occur within a bounded token distance of each other.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .errors import CompositionError
from .query import Field, PairingPolicy, ProximityGroup


logger = logging.getLogger(__name__)


def pairs(terms: Sequence[str], policy: PairingPolicy) -> List[Tuple[str, str]]:
    """Term pairs produced by a pairing policy.

    ALL_PAIRS yields every (t_i, t_j) with i < j; ADJACENT_PAIRS yields every
    (t_i, t_i+1). Pairs made of two identical terms are skipped under both.
    """
    if policy == PairingPolicy.ALL_PAIRS:
        return [
            (terms[i], terms[j])
            for i in range(len(terms) - 1)
            for j in range(i + 1, len(terms))
            if terms[i] != terms[j]
        ]
    if policy == PairingPolicy.ADJACENT_PAIRS:
        return [
            (terms[i], terms[i + 1])
            for i in range(len(terms) - 1)
            if terms[i] != terms[i + 1]
        ]
    raise CompositionError(f"Unknown pairing policy: {policy}")


class ProximityQueryBuilder:
    """Builds ProximityGroup nodes over ordered term sequences."""

    def build(
        self,
        terms: Sequence[str],
        field: Field,
        distance: int,
        boost: float,
        policy: PairingPolicy = PairingPolicy.ALL_PAIRS,
    ) -> Optional[ProximityGroup]:
        """Build the proximity group for one field.

        Args:
            terms: Ordered query terms
            field: Field the clauses are evaluated on
            distance: Maximum token distance between the two terms of a clause
            boost: Boost applied once to the whole group
            policy: Pairing policy

        Returns:
            Optional[ProximityGroup]: None when boost is 0 or no pair survives

        Raises:
            CompositionError: When distance or boost is negative
        """
        if distance < 0:
            raise CompositionError(f"Proximity distance must be non-negative, but got: {distance}")
        if boost < 0:
            raise CompositionError(f"Proximity boost must be non-negative, but got: {boost}")
        if boost == 0:
            return None

        clauses = tuple((a, b, distance) for a, b in pairs(terms, policy))
        if not clauses:
            logger.debug(f"No proximity pairs for terms {list(terms)} ({policy.value})")
            return None

        return ProximityGroup(field=field, pairs=clauses, boost=boost)
