"""
Tiered memory for a single agent.

Records enter a small working buffer. When the buffer overflows, the
least valuable record is evicted and, if it was important enough,
promoted into long-term or episodic memory. Periodic maintenance
consolidates frequently used working records, decays stale ones and
purges the faded. Recall scans every tier and ranks matches by a
relevance score that mixes importance, filter matches, proximity and
usage, discounted by age.
"""
from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .logging_config import log_extra
from .types import MemoryKind, MemoryTier, Position, enum_value
from .util import clamp, distance

logger = logging.getLogger(__name__)

EPISODIC_KINDS = (MemoryKind.INTERACTION, MemoryKind.OUTCOME)


@dataclass
class MemoryConfig:
    """
    Capacities and tuning constants for the tiered memory store.
    
    The relevance and eviction weights are exposed here so they can be
    varied without touching the store.
    
    Attributes:
        max_working: Capacity of working memory
        max_long_term: Capacity of long-term memory
        max_episodic: Capacity of episodic memory
        decay_rate: Exponential decay rate used for importance and relevance
        decay_step: Time step (seconds) one maintenance decay represents
        decay_after: Seconds without access before a record starts decaying
        consolidation_threshold: Importance above which records are promoted
        episodic_threshold: Importance above which interactions/outcomes go episodic
        consolidation_min_access: Access count needed for maintenance promotion
        working_purge: Working records below this importance are purged
        long_term_purge: Long-term records below this importance are purged
        access_boost: Importance gained by a record each time it is recalled
        default_radius: Recall radius used when none is given
    """
    max_working: int = 7
    max_long_term: int = 100
    max_episodic: int = 50
    
    decay_rate: float = 0.1
    decay_step: float = 1.0 / 60.0
    decay_after: float = 60.0
    
    consolidation_threshold: float = 0.7
    episodic_threshold: float = 0.8
    consolidation_min_access: int = 2
    
    working_purge: float = 0.1
    long_term_purge: float = 0.05
    
    # Relevance weights
    kind_weight: float = 0.3
    text_weight: float = 0.2
    proximity_weight: float = 0.2
    proximity_range: float = 10.0
    access_step: float = 0.02
    access_cap: float = 0.2
    
    access_boost: float = 0.01
    default_radius: float = 5.0
    
    def __post_init__(self):
        self.max_working = max(1, self.max_working)
        self.max_long_term = max(1, self.max_long_term)
        self.max_episodic = max(1, self.max_episodic)
        self.decay_rate = max(0.0, self.decay_rate)
        self.proximity_range = max(1e-6, self.proximity_range)
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class MemoryRecord:
    """
    A single remembered event.

    Attributes:
        memory_id: Unique identifier
        kind: What sort of event this was
        text: Free-form description
        location: Where it happened
        created_at: Clock time of creation
        importance: Retention weight (0.0 to 1.0)
        emotional_weight: Valence (-1.0 to 1.0)
        payload: Structured data attached by the writer
        access_count: Times this record has been recalled
        last_access: Clock time of the last recall (creation time until then)
    """
    memory_id: str
    kind: MemoryKind
    text: str
    location: Position
    created_at: float
    importance: float = 0.5
    emotional_weight: float = 0.0
    payload: Dict[str, Any] = field(default_factory=dict)
    access_count: int = 0
    last_access: Optional[float] = None

    def __post_init__(self):
        self.kind = MemoryKind(self.kind)
        self.location = tuple(self.location)
        self.importance = clamp(self.importance, 0.0, 1.0)
        self.emotional_weight = clamp(self.emotional_weight, -1.0, 1.0)
        if self.last_access is None:
            self.last_access = self.created_at

    def touch(self, now: float, boost: float) -> None:
        """Register one recall of this record."""
        self.access_count += 1
        self.importance = min(1.0, self.importance + boost)
        self.last_access = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory_id": self.memory_id,
            "kind": self.kind.value,
            "text": self.text,
            "location": list(self.location),
            "created_at": self.created_at,
            "importance": self.importance,
            "emotional_weight": self.emotional_weight,
            "payload": dict(self.payload),
            "access_count": self.access_count,
            "last_access": self.last_access,
        }


@dataclass
class MaintenanceResult:
    """Results from one maintenance pass."""
    promoted: int = 0
    decayed: int = 0
    purged: int = 0


class MemoryStore:
    """
    Bounded three-tier memory store.

    Invariants:
        - Working, long-term and episodic never exceed their capacities
        - Every record lives in exactly one tier
        - A record promoted by an overflow is never evicted by that same overflow

    Example:
        >>> store = MemoryStore(clock=lambda: 0.0)
        >>> _ = store.store(MemoryKind.OBSERVATION, "Saw an apple", (1, 2, 0), 0.7)
        >>> [r.text for r in store.recall(text="apple")]
        ['Saw an apple']
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        agent_id: Optional[str] = None,
    ):
        self.config = config or MemoryConfig()
        self._clock = clock or time.monotonic
        self.agent_id = agent_id
        self._tiers: Dict[MemoryTier, List[MemoryRecord]] = {
            MemoryTier.WORKING: [],
            MemoryTier.LONG_TERM: [],
            MemoryTier.EPISODIC: [],
        }

    # ------------------------------------------------------------------
    # Storing
    # ------------------------------------------------------------------

    def store(
        self,
        kind: MemoryKind,
        text: str,
        location: Sequence[float],
        importance: float = 0.5,
        payload: Optional[Dict[str, Any]] = None,
        emotional_weight: float = 0.0,
        now: Optional[float] = None,
    ) -> MemoryRecord:
        """
        Insert a new record into working memory.

        Args:
            kind: Memory kind
            text: Description of the event
            location: Where it happened
            importance: Retention weight (clamped to 0.0-1.0)
            payload: Optional structured data
            emotional_weight: Valence (clamped to -1.0-1.0)
            now: Clock override

        Returns:
            The stored record (which may already have been evicted if it was
            the least valuable entry of a full working buffer)
        """
        now = self._now(now)
        record = MemoryRecord(
            memory_id=f"mem_{uuid.uuid4().hex[:8]}",
            kind=kind,
            text=text,
            location=tuple(location),
            created_at=now,
            importance=importance,
            emotional_weight=emotional_weight,
            payload=dict(payload or {}),
        )

        working = self._tiers[MemoryTier.WORKING]
        working.append(record)
        if len(working) > self.config.max_working:
            evicted = self._evict(MemoryTier.WORKING, now)
            if evicted.importance > self.config.consolidation_threshold:
                self._promote(evicted, now)
        return record

    def store_action_outcome(
        self,
        action: str,
        outcome: str,
        success: bool,
        location: Sequence[float],
        now: Optional[float] = None,
    ) -> MemoryRecord:
        """Record the outcome of an action; failures are retained more strongly."""
        return self.store(
            MemoryKind.OUTCOME,
            f"Action {action}: {outcome}",
            location,
            importance=0.8 if success else 0.9,
            payload={"action": action, "outcome": outcome, "success": success},
            now=now,
        )

    def _evict(
        self,
        tier: MemoryTier,
        now: float,
        exclude: Optional[MemoryRecord] = None,
    ) -> MemoryRecord:
        records = self._tiers[tier]
        candidates = [r for r in records if r is not exclude]
        if tier == MemoryTier.LONG_TERM:
            key = lambda r: r.importance * (1.0 / (now - r.last_access + 1.0))
        else:
            key = lambda r: r.importance * (1.0 / (r.access_count + 1))
        victim = min(candidates, key=key)
        records.remove(victim)
        logger.debug(
            f"Evicted {victim.memory_id} from {tier.value} (importance={victim.importance:.2f})",
            extra=log_extra("memory", self.agent_id, event_type="evict"),
        )
        return victim

    def _promote(self, record: MemoryRecord, now: float) -> MemoryTier:
        if (
            record.importance > self.config.episodic_threshold
            and record.kind in EPISODIC_KINDS
        ):
            tier, capacity = MemoryTier.EPISODIC, self.config.max_episodic
        else:
            tier, capacity = MemoryTier.LONG_TERM, self.config.max_long_term

        records = self._tiers[tier]
        records.append(record)
        if len(records) > capacity:
            self._evict(tier, now, exclude=record)

        logger.debug(
            f"Promoted {record.memory_id} to {tier.value}",
            extra=log_extra("memory", self.agent_id, event_type="promote"),
        )
        return tier

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def maintain(self, now: Optional[float] = None) -> MaintenanceResult:
        """
        Consolidate, decay and purge.

        Working records that are both important and used at least
        ``consolidation_min_access`` times are promoted. Any record left
        unaccessed longer than ``decay_after`` loses importance by the factor
        ``exp(-decay_rate * decay_step)``. Faded working and long-term records
        are purged; episodic records are never purged.
        """
        now = self._now(now)
        cfg = self.config
        result = MaintenanceResult()

        working = self._tiers[MemoryTier.WORKING]
        for record in list(working):
            if (
                record.importance > cfg.consolidation_threshold
                and record.access_count >= cfg.consolidation_min_access
            ):
                working.remove(record)
                self._promote(record, now)
                result.promoted += 1

        factor = math.exp(-cfg.decay_rate * cfg.decay_step)
        for records in self._tiers.values():
            for record in records:
                if now - record.last_access > cfg.decay_after:
                    record.importance *= factor
                    result.decayed += 1

        for tier, threshold in (
            (MemoryTier.WORKING, cfg.working_purge),
            (MemoryTier.LONG_TERM, cfg.long_term_purge),
        ):
            before = len(self._tiers[tier])
            self._tiers[tier] = [r for r in self._tiers[tier] if r.importance >= threshold]
            result.purged += before - len(self._tiers[tier])

        if result.promoted or result.purged:
            logger.debug(
                f"Maintenance: promoted={result.promoted} decayed={result.decayed} "
                f"purged={result.purged}",
                extra=log_extra("memory", self.agent_id, event_type="maintenance"),
            )
        return result

    # ------------------------------------------------------------------
    # Recall
    # ------------------------------------------------------------------

    def recall(
        self,
        kind: Optional[MemoryKind] = None,
        text: Optional[str] = None,
        location: Optional[Sequence[float]] = None,
        radius: Optional[float] = None,
        now: Optional[float] = None,
    ) -> List[MemoryRecord]:
        """
        Find matching records across all tiers, most relevant first.

        Each filter is skipped when None (or, for text, empty). Text matching is a
        case-insensitive substring test. Every returned record counts as
        accessed: its access count and importance are bumped.

        Args:
            kind: Only records of this kind
            text: Only records whose text contains this
            location: Only records within ``radius`` of this position
            radius: Search radius (defaults to ``config.default_radius``)
            now: Clock override

        Returns:
            Matching records sorted by descending relevance
        """
        now = self._now(now)
        if kind is not None:
            kind = MemoryKind(kind)
        if radius is None:
            radius = self.config.default_radius
        needle = text.lower() if text else None

        matches: List[MemoryRecord] = []
        for records in self._tiers.values():
            for record in records:
                if kind is not None and record.kind != kind:
                    continue
                if needle is not None and needle not in record.text.lower():
                    continue
                if location is not None and distance(record.location, location) > radius:
                    continue
                record.touch(now, self.config.access_boost)
                matches.append(record)

        matches.sort(
            key=lambda r: self.relevance(r, kind, text, location, now),
            reverse=True,
        )
        return matches

    def relevance(
        self,
        record: MemoryRecord,
        kind: Optional[MemoryKind] = None,
        text: Optional[str] = None,
        location: Optional[Sequence[float]] = None,
        now: Optional[float] = None,
    ) -> float:
        """Score a record against a query; higher is more relevant."""
        now = self._now(now)
        cfg = self.config
        score = record.importance

        if kind is not None and record.kind == MemoryKind(kind):
            score += cfg.kind_weight
        if text and text.lower() in record.text.lower():
            score += cfg.text_weight
        if location is not None:
            d = distance(record.location, location)
            score += cfg.proximity_weight * max(0.0, (cfg.proximity_range - d) / cfg.proximity_range)
        score += min(cfg.access_cap, record.access_count * cfg.access_step)

        age = max(0.0, now - record.created_at)
        return score * math.exp(-age * cfg.decay_rate / 100.0)

    def relevant_experiences(
        self,
        action: str,
        location: Sequence[float],
        radius: float = 10.0,
    ) -> List[MemoryRecord]:
        """Outcome memories about ``action`` near ``location``."""
        return self.recall(MemoryKind.OUTCOME, enum_value(action), location, radius)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def records(self, tier: MemoryTier) -> Tuple[MemoryRecord, ...]:
        """Read-only view of one tier."""
        return tuple(self._tiers[MemoryTier(tier)])

    @property
    def working(self) -> Tuple[MemoryRecord, ...]:
        return self.records(MemoryTier.WORKING)

    @property
    def long_term(self) -> Tuple[MemoryRecord, ...]:
        return self.records(MemoryTier.LONG_TERM)

    @property
    def episodic(self) -> Tuple[MemoryRecord, ...]:
        return self.records(MemoryTier.EPISODIC)

    def tier_of(self, memory_id: str) -> Optional[MemoryTier]:
        """Which tier holds ``memory_id``, or None if it is gone."""
        for tier, records in self._tiers.items():
            if any(r.memory_id == memory_id for r in records):
                return tier
        return None

    def counts(self) -> Dict[str, int]:
        return {tier.value: len(records) for tier, records in self._tiers.items()}

    def stats(self) -> Dict[str, Any]:
        """Tier counts plus mean importance over all records."""
        everything = [r for records in self._tiers.values() for r in records]
        mean = sum(r.importance for r in everything) / len(everything) if everything else 0.0
        return {**self.counts(), "total": len(everything), "mean_importance": mean}

    def clear(self) -> None:
        for records in self._tiers.values():
            records.clear()

    def __len__(self) -> int:
        return sum(len(records) for records in self._tiers.values())

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now
