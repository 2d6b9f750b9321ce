"""Reputation scoring for identities."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from identity_registry.common.types import MAX_REPUTATION_SCORE, Principal, Timestamp
from identity_registry.identity.store import IdentityStore

logger = structlog.get_logger()

# Default score deltas per trust signal
VERIFIED_DELTA = 100
UNVERIFIED_DELTA = -50
CREDENTIAL_ADDED_DELTA = 50
CREDENTIAL_REVOKED_DELTA = -30


def apply_delta(current: int, delta: int, max_score: int = MAX_REPUTATION_SCORE) -> int:
    """
    Apply a score delta with saturation at both ends.

    Positive deltas add up to ``max_score``; zero or negative deltas subtract
    their magnitude down to 0.
    """
    if delta > 0:
        return min(current + delta, max_score)
    return max(current - abs(delta), 0)


@dataclass(frozen=True)
class ReputationChange:
    """Outcome of one reputation adjustment."""

    principal: Principal
    previous_score: int
    new_score: int
    delta: int
    timestamp: Timestamp

    @property
    def clamped(self) -> bool:
        """True when saturation absorbed part or all of the delta."""
        return self.new_score - self.previous_score != self.delta


class ReputationEngine:
    """
    Applies trust-signal deltas to identity scores.

    Scores stay within ``[0, max_score]`` after every adjustment. The engine
    does not emit events itself; every ``adjust`` call yields a
    ``ReputationChange`` that the caller records, whether or not the score
    actually moved.

    Example:
        ```python
        engine = ReputationEngine(identities)

        change = await engine.adjust(principal, CREDENTIAL_ADDED_DELTA, now)
        print(change.previous_score, "->", change.new_score)
        ```
    """

    def __init__(
        self,
        identities: IdentityStore,
        max_score: int = MAX_REPUTATION_SCORE,
    ) -> None:
        self._identities = identities
        self.max_score = max_score
        self._logger = logger

    async def adjust(
        self,
        principal: Principal,
        delta: int,
        now: Timestamp,
    ) -> ReputationChange:
        """
        Apply ``delta`` to the principal's score.

        Args:
            principal: Identity to adjust
            delta: Signed score change
            now: Time of the triggering action

        Returns:
            The applied change

        Raises:
            NotFoundError: Principal has no identity
        """
        identity = await self._identities.require(principal)
        new_score = apply_delta(identity.reputation_score, delta, self.max_score)

        await self._identities.save(identity.touched(now, reputation_score=new_score))

        change = ReputationChange(
            principal=principal,
            previous_score=identity.reputation_score,
            new_score=new_score,
            delta=delta,
            timestamp=now,
        )

        self._logger.debug(
            "reputation_adjusted",
            principal=principal,
            delta=delta,
            previous=change.previous_score,
            score=new_score,
            clamped=change.clamped,
        )

        return change
