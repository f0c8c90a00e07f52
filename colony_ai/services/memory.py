"""
Colony Memory Service for colony-ai.

A per-colony, category-bounded store of remembered facts: discovered
resources, enemy sightings, battle outcomes, scouting results and the
colony's own decisions. Each entry carries a relevance score that blends
category-specific salience with recency; the score drives eviction when a
category is full, ranking on retrieval, and age-based cleanup.
"""

from __future__ import annotations

import logging
import re
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from colony_ai.clock import Clock, utc_now
from colony_ai.config import MemoryConfig
from colony_ai.models.memory import (
    CATEGORY_CAPACITY,
    CATEGORY_RETENTION_DAYS,
    CategoryUsage,
    CleanupReport,
    MemoryCategory,
    MemoryEntry,
    MemoryExport,
    MemoryQuery,
    MemorySearch,
    MemoryStats,
    RelatedMemory,
    category_key,
)
from colony_ai.models.position import Position

logger = logging.getLogger(__name__)

# Word-overlap scoring ignores short tokens like "x", "y" and "type".
_MIN_WORD_LENGTH = 4
_WORD_PATTERN = re.compile(r"\b\w+\b")


def _as_float(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class ColonyMemory:
    """
    Bounded associative memory owned by one colony.

    Not thread-safe on its own; the owning ColonyController serializes
    access through its colony lock.
    """

    colony_id: str
    config: MemoryConfig = field(default_factory=MemoryConfig)
    clock: Clock = utc_now

    _categories: dict[str, list[MemoryEntry]] = field(default_factory=dict)
    last_cleanup: datetime | None = None

    def __post_init__(self) -> None:
        for category in CATEGORY_CAPACITY:
            self._categories.setdefault(category, [])

    # =========================================================================
    # Capacity and scoring
    # =========================================================================

    def capacity(self, category: MemoryCategory | str) -> int:
        """Maximum number of entries kept for a category."""
        return CATEGORY_CAPACITY.get(category_key(category), self.config.default_capacity)

    def retention_days(self, category: MemoryCategory | str) -> int:
        """Days an old, unaccessed, low-relevance entry survives cleanup."""
        return CATEGORY_RETENTION_DAYS.get(
            category_key(category), self.config.default_retention_days
        )

    def _age_days(self, timestamp: datetime) -> float:
        return max(0.0, (self.clock() - timestamp).total_seconds() / 86400)

    def recency_score(self, timestamp: datetime) -> float:
        """1.0 for a brand new entry, falling linearly to 0 over the recency window."""
        return max(0.0, 1.0 - self._age_days(timestamp) / self.config.recency_window_days)

    def calculate_relevance(
        self, category: str, payload: dict[str, Any], created_at: datetime
    ) -> float:
        """Category salience plus a recency bonus, clamped to [0.1, 1.0]."""
        score = 0.5

        if category == MemoryCategory.DISCOVERED_RESOURCES.value:
            score += _as_float(payload.get("abundance")) / 100 * 0.3
            score += _as_float(payload.get("accessibility")) * 0.2
        elif category == MemoryCategory.ENEMY_MOVEMENTS.value:
            score += _as_float(payload.get("threat_level")) * 0.4
            unit_count = _as_float(payload.get("unit_count"))
            if unit_count:
                score += min(0.3, unit_count / 100)
        elif category == MemoryCategory.STRATEGIC_POSITIONS.value:
            score += _as_float(payload.get("strategic_value")) * 0.4
        elif category == MemoryCategory.TERRAIN_FEATURES.value:
            score += _as_float(payload.get("strategic_value")) * 0.3

        score += max(
            0.0, 0.2 * (1 - self._age_days(created_at) / self.config.recency_window_days)
        )
        return max(0.1, min(1.0, score))

    def _ranking_score(self, entry: MemoryEntry) -> float:
        return (
            entry.relevance_score * self.config.relevance_weight
            + self.recency_score(entry.created_at) * self.config.recency_weight
        )

    def _enforce_capacity(self, category: str) -> None:
        entries = self._categories[category]
        excess = len(entries) - self.capacity(category)
        if excess <= 0:
            return

        # Least relevant and least accessed go first; ties evict the oldest.
        ranked = sorted(
            range(len(entries)),
            key=lambda i: entries[i].relevance_score + entries[i].access_count * 0.1,
        )
        evicted = set(ranked[:excess])
        self._categories[category] = [e for i, e in enumerate(entries) if i not in evicted]

    # =========================================================================
    # Store and retrieve
    # =========================================================================

    def store(self, category: MemoryCategory | str, payload: dict[str, Any]) -> str:
        """
        Store a memory and enforce the category's capacity.

        Args:
            category: Memory category (unknown categories are created on demand)
            payload: Arbitrary facts to remember

        Returns:
            The new entry's id
        """
        key = category_key(category)
        now = self.clock()
        entry = MemoryEntry(
            category=key,
            payload=dict(payload),
            relevance_score=self.calculate_relevance(key, payload, now),
            created_at=now,
        )
        self._categories.setdefault(key, []).append(entry)
        self._enforce_capacity(key)
        return entry.id

    def get_memories(
        self,
        category: MemoryCategory | str,
        query: MemoryQuery | None = None,
    ) -> list[MemoryEntry]:
        """
        Retrieve memories from one category, best first.

        Relevance is recalculated before filtering. Results are ranked by the
        relevance/recency blend and the limit is applied after ranking.
        Access bookkeeping is updated on every returned entry.
        """
        query = query or MemoryQuery()
        key = category_key(category)
        entries = self._categories.get(key, [])
        if not entries:
            return []

        for entry in entries:
            entry.relevance_score = self.calculate_relevance(key, entry.payload, entry.created_at)

        matches = list(entries)
        if query.since is not None:
            matches = [m for m in matches if m.created_at >= query.since]
        if query.location is not None:
            matches = [
                m
                for m in matches
                if m.location is not None
                and m.location.distance_to(query.location) <= query.radius
            ]
        if query.relevance_threshold is not None:
            matches = [m for m in matches if m.relevance_score >= query.relevance_threshold]

        matches.sort(key=self._ranking_score, reverse=True)
        if query.limit is not None:
            matches = matches[: query.limit]

        now = self.clock()
        for entry in matches:
            entry.access_count += 1
            entry.last_accessed = now

        return [entry.model_copy(deep=True) for entry in matches]

    def count(self, category: MemoryCategory | str) -> int:
        """Number of entries currently held in a category."""
        return len(self._categories.get(category_key(category), []))

    def _find(self, memory_id: str) -> tuple[str, int] | None:
        for category, entries in self._categories.items():
            for index, entry in enumerate(entries):
                if entry.id == memory_id:
                    return category, index
        return None

    def get_memory(self, memory_id: str) -> MemoryEntry | None:
        """Get one memory by id, counting the access."""
        found = self._find(memory_id)
        if found is None:
            return None
        category, index = found
        entry = self._categories[category][index]
        entry.access_count += 1
        entry.last_accessed = self.clock()
        return entry.model_copy(deep=True)

    def update_memory(self, memory_id: str, updates: dict[str, Any]) -> MemoryEntry:
        """
        Merge ``updates`` into a memory's payload and rescore it.

        Raises:
            ValueError: If no memory has this id
        """
        found = self._find(memory_id)
        if found is None:
            raise ValueError(f"Memory {memory_id} not found")
        category, index = found
        entry = self._categories[category][index]
        entry.payload.update(updates)
        entry.last_updated = self.clock()
        entry.relevance_score = self.calculate_relevance(category, entry.payload, entry.created_at)
        return entry.model_copy(deep=True)

    def delete_memory(self, memory_id: str) -> MemoryEntry | None:
        """Remove a memory. Returns the removed entry, or None if absent."""
        found = self._find(memory_id)
        if found is None:
            return None
        category, index = found
        return self._categories[category].pop(index)

    # =========================================================================
    # Search
    # =========================================================================

    def _matches(self, entry: MemoryEntry, criteria: MemorySearch) -> bool:
        if criteria.text and criteria.text.lower() not in entry.model_dump_json().lower():
            return False
        if criteria.location is not None and entry.location is not None:
            if entry.location.distance_to(criteria.location) > criteria.radius:
                return False
        if criteria.type is not None and entry.type != criteria.type:
            return False
        if criteria.start is not None and entry.created_at < criteria.start:
            return False
        if criteria.end is not None and entry.created_at > criteria.end:
            return False
        if criteria.custom_filter is not None and not criteria.custom_filter(entry):
            return False
        return True

    def _search_relevance(self, entry: MemoryEntry, criteria: MemorySearch) -> float:
        relevance = entry.relevance_score * 0.4
        if criteria.location is not None and entry.location is not None:
            distance = entry.location.distance_to(criteria.location)
            relevance += max(0.0, 1 - distance / criteria.radius) * 0.3
        if criteria.type is not None and entry.type == criteria.type:
            relevance += 0.2
        relevance += self.recency_score(entry.created_at) * 0.1
        return min(1.0, relevance)

    def search_memories(self, criteria: MemorySearch) -> list[MemoryEntry]:
        """Search every category, ordered by relevance to the criteria."""
        results = [
            entry
            for entries in self._categories.values()
            for entry in entries
            if self._matches(entry, criteria)
        ]
        results.sort(key=lambda e: self._search_relevance(e, criteria), reverse=True)
        return [entry.model_copy(deep=True) for entry in results]

    @staticmethod
    def _content_words(entry: MemoryEntry) -> list[str]:
        text = entry.model_dump_json(include={"payload"}).lower()
        return [w for w in _WORD_PATTERN.findall(text) if len(w) >= _MIN_WORD_LENGTH]

    def _relation_score(self, first: MemoryEntry, second: MemoryEntry) -> float:
        score = 0.0

        if first.location is not None and second.location is not None:
            distance = first.location.distance_to(second.location)
            if distance <= 5:
                score += 0.4 * (1 - distance / 5)

        if first.type is not None and first.type == second.type:
            score += 0.3

        days_apart = abs((first.created_at - second.created_at).total_seconds()) / 86400
        if days_apart <= 7:
            score += 0.2 * (1 - days_apart / 7)

        other_words = set(self._content_words(second))
        common = sum(1 for word in self._content_words(first) if word in other_words)
        if common > 2:
            score += min(0.1, common * 0.02)

        return min(1.0, score)

    def get_related_memories(
        self, reference: MemoryEntry, max_results: int = 5
    ) -> list[RelatedMemory]:
        """Memories related to ``reference`` by place, type, time and content."""
        related: list[RelatedMemory] = []
        for entries in self._categories.values():
            for entry in entries:
                if entry.id == reference.id:
                    continue
                score = self._relation_score(reference, entry)
                if score > self.config.related_threshold:
                    related.append(
                        RelatedMemory(entry=entry.model_copy(deep=True), relation_score=score)
                    )
        related.sort(key=lambda r: r.relation_score, reverse=True)
        return related[:max_results]

    def memories_near(
        self, category: MemoryCategory | str, location: Position, radius: float
    ) -> list[MemoryEntry]:
        """Entries of a category within ``radius`` of a location, without access tracking."""
        return [
            entry.model_copy(deep=True)
            for entry in self._categories.get(category_key(category), [])
            if entry.location is not None and entry.location.distance_to(location) <= radius
        ]

    # =========================================================================
    # Maintenance
    # =========================================================================

    def cleanup(self) -> CleanupReport:
        """
        Purge entries older than their category's retention window.

        An old entry survives if it is still relevant or has ever been read.
        """
        now = self.clock()
        report = CleanupReport(cleanup_time=now)

        for category, entries in self._categories.items():
            cutoff = now - timedelta(days=self.retention_days(category))
            kept = [
                entry
                for entry in entries
                if entry.created_at >= cutoff
                or entry.relevance_score >= self.config.cleanup_relevance_floor
                or entry.access_count > 0
            ]
            removed = len(entries) - len(kept)
            if removed:
                self._categories[category] = kept
                report.removed_memories += removed
                report.categories_cleaned[category] = removed

        self.last_cleanup = now
        if report.removed_memories:
            logger.debug(
                "Colony %s memory cleanup removed %d entries",
                self.colony_id,
                report.removed_memories,
            )
        return report

    def get_stats(self) -> MemoryStats:
        """Counts, fill levels and notable entries across all categories."""
        stats = MemoryStats()
        everything: list[MemoryEntry] = []

        for category, entries in self._categories.items():
            limit = self.capacity(category)
            stats.categories[category] = len(entries)
            stats.memory_usage[category] = CategoryUsage(
                used=len(entries), limit=limit, usage_percent=len(entries) / limit * 100
            )
            everything.extend(entries)

        stats.total_memories = len(everything)
        if everything:
            stats.oldest_memory = min(everything, key=lambda e: e.created_at)
            stats.newest_memory = max(everything, key=lambda e: e.created_at)
            stats.most_accessed = max(everything, key=lambda e: e.access_count)
        return stats

    # =========================================================================
    # Import / Export
    # =========================================================================

    def checkpoint(self) -> tuple[dict[str, list[MemoryEntry]], datetime | None]:
        """Copy of every category, for rolling back a failed tick."""
        return deepcopy(self._categories), self.last_cleanup

    def restore(self, checkpoint: tuple[dict[str, list[MemoryEntry]], datetime | None]) -> None:
        self._categories, self.last_cleanup = checkpoint

    def export(self) -> MemoryExport:
        """Serialize every category for persistence."""
        return MemoryExport(
            colony_id=self.colony_id,
            export_time=self.clock(),
            memories={
                category: [entry.model_copy(deep=True) for entry in entries]
                for category, entries in self._categories.items()
            },
        )

    def import_data(self, data: MemoryExport) -> MemoryStats:
        """
        Merge exported memories into this store, skipping ids already present.

        Raises:
            ValueError: If the export belongs to a different colony
        """
        if data.colony_id != self.colony_id:
            raise ValueError(
                f"Memory data belongs to colony {data.colony_id}, not {self.colony_id}"
            )

        for category, entries in data.memories.items():
            existing = self._categories.setdefault(category, [])
            known_ids = {entry.id for entry in existing}
            for entry in entries:
                if entry.id not in known_ids:
                    existing.append(entry.model_copy(deep=True))
                    known_ids.add(entry.id)
            self._enforce_capacity(category)

        return self.get_stats()
