"""Tests for the colony memory store."""

from __future__ import annotations

import pytest

from colony_ai.config import MemoryConfig
from colony_ai.models.memory import (
    MemoryCategory,
    MemoryExport,
    MemoryQuery,
    MemorySearch,
)
from colony_ai.models.position import Position
from colony_ai.services.memory import ColonyMemory

# =============================================================================
# Storage and capacity
# =============================================================================


class TestStore:
    """Tests for storing memories and capacity enforcement."""

    def test_store_returns_id(self, clock) -> None:
        """Storing returns an id that can be fetched back."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = memory.store(MemoryCategory.DISCOVERED_RESOURCES, {"abundance": 50})

        entry = memory.get_memory(memory_id)
        assert entry is not None
        assert entry.payload["abundance"] == 50
        assert entry.access_count == 1

    def test_capacity_is_enforced(self, clock) -> None:
        """A category never holds more than its capacity."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        capacity = memory.capacity(MemoryCategory.ALLIANCE_INFORMATION)
        assert capacity == 15

        for i in range(capacity + 10):
            memory.store(MemoryCategory.ALLIANCE_INFORMATION, {"index": i})

        assert memory.count(MemoryCategory.ALLIANCE_INFORMATION) == capacity

    def test_least_relevant_evicted_first(self, clock) -> None:
        """Eviction drops the lowest-relevance entries."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        capacity = memory.capacity(MemoryCategory.ENEMY_MOVEMENTS)

        weak_id = memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"threat_level": 0.0})
        for _ in range(capacity):
            memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"threat_level": 0.9})

        assert memory.get_memory(weak_id) is None
        assert memory.count(MemoryCategory.ENEMY_MOVEMENTS) == capacity

    def test_unknown_category_uses_default_capacity(self, clock) -> None:
        """Categories without a configured capacity fall back to the default."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        assert memory.capacity("growth_events") == memory.config.default_capacity

        memory.store("growth_events", {"tick": 1})
        assert memory.count("growth_events") == 1


# =============================================================================
# Retrieval
# =============================================================================


class TestRetrieve:
    """Tests for ranked retrieval."""

    def test_limit_applies_after_ranking(self, clock) -> None:
        """With 20 entries stored, a limit of 5 returns the 5 best."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        for i in range(20):
            memory.store(
                MemoryCategory.DISCOVERED_RESOURCES,
                {"abundance": i * 5, "accessibility": 0.0},
            )

        results = memory.get_memories(
            MemoryCategory.DISCOVERED_RESOURCES, MemoryQuery(limit=5)
        )

        assert len(results) == 5
        abundances = [entry.payload["abundance"] for entry in results]
        assert abundances == sorted(abundances, reverse=True)
        assert abundances[0] == 95

    def test_retrieval_counts_access(self, clock) -> None:
        """Returned entries have their access bookkeeping updated."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = memory.store(MemoryCategory.BATTLE_HISTORY, {"won": True})

        memory.get_memories(MemoryCategory.BATTLE_HISTORY)
        memory.get_memories(MemoryCategory.BATTLE_HISTORY)

        entry = memory.get_memory(memory_id)
        assert entry is not None
        assert entry.access_count == 3
        assert entry.last_accessed == clock.now

    def test_empty_category(self, clock) -> None:
        """Retrieving from an empty category returns nothing."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        assert memory.get_memories(MemoryCategory.TRADE_OPPORTUNITIES) == []

    def test_location_filter(self, clock) -> None:
        """Only entries within the radius are returned."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.TERRAIN_FEATURES, {"location": {"x": 1, "y": 1}})
        memory.store(MemoryCategory.TERRAIN_FEATURES, {"location": {"x": 50, "y": 50}})
        memory.store(MemoryCategory.TERRAIN_FEATURES, {"note": "no location"})

        results = memory.get_memories(
            MemoryCategory.TERRAIN_FEATURES,
            MemoryQuery(location=Position(x=0, y=0), radius=5),
        )

        assert len(results) == 1
        assert results[0].location == Position(x=1, y=1)

    def test_recent_entries_rank_higher(self, clock) -> None:
        """Of two equally salient entries, the newer ranks first."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        old_id = memory.store(MemoryCategory.BATTLE_HISTORY, {"name": "old"})
        clock.advance(days=10)
        new_id = memory.store(MemoryCategory.BATTLE_HISTORY, {"name": "new"})

        results = memory.get_memories(MemoryCategory.BATTLE_HISTORY)

        assert [entry.id for entry in results] == [new_id, old_id]

    def test_returned_entries_are_copies(self, clock) -> None:
        """Mutating a returned entry does not change the store."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = memory.store(MemoryCategory.BATTLE_HISTORY, {"won": True})

        entry = memory.get_memories(MemoryCategory.BATTLE_HISTORY)[0]
        entry.payload["won"] = False

        stored = memory.get_memory(memory_id)
        assert stored is not None
        assert stored.payload["won"] is True


# =============================================================================
# Relevance
# =============================================================================


class TestRelevance:
    """Tests for relevance scoring."""

    def test_resource_relevance(self, clock) -> None:
        """Abundance and accessibility raise resource relevance."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        score = memory.calculate_relevance(
            MemoryCategory.DISCOVERED_RESOURCES.value,
            {"abundance": 100, "accessibility": 1.0},
            clock.now,
        )
        # 0.5 + 0.3 + 0.2 + 0.2 recency, clamped
        assert score == pytest.approx(1.0)

    def test_stale_memory_keeps_base_salience(self, clock) -> None:
        """Past the recency window only the base score remains."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        created = clock.now
        clock.advance(days=100)
        score = memory.calculate_relevance("anything", {}, created)
        assert score == pytest.approx(0.5)

    def test_recency_decays(self, clock) -> None:
        """Recency falls linearly to zero across the window."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        created = clock.now
        assert memory.recency_score(created) == pytest.approx(1.0)
        clock.advance(days=15)
        assert memory.recency_score(created) == pytest.approx(0.5)
        clock.advance(days=30)
        assert memory.recency_score(created) == 0.0


# =============================================================================
# Update, delete, search
# =============================================================================


class TestMutations:
    """Tests for updating and deleting memories."""

    def test_update_merges_payload(self, clock) -> None:
        """Updates merge into the payload and stamp last_updated."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"unit_count": 5})
        clock.advance(60)

        updated = memory.update_memory(memory_id, {"threat_level": 0.8})

        assert updated.payload == {"unit_count": 5, "threat_level": 0.8}
        assert updated.last_updated == clock.now

    def test_update_unknown_raises(self, clock) -> None:
        """Updating a missing memory is an error."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        with pytest.raises(ValueError):
            memory.update_memory("mem_missing", {})

    def test_delete(self, clock) -> None:
        """Deleting returns the entry once, then None."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = memory.store(MemoryCategory.BATTLE_HISTORY, {})

        assert memory.delete_memory(memory_id) is not None
        assert memory.delete_memory(memory_id) is None
        assert memory.count(MemoryCategory.BATTLE_HISTORY) == 0


class TestSearch:
    """Tests for cross-category search."""

    def test_text_search(self, clock) -> None:
        """Text search matches across categories."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.DISCOVERED_RESOURCES, {"resource": "iron ore"})
        memory.store(MemoryCategory.TERRAIN_FEATURES, {"feature": "iron ridge"})
        memory.store(MemoryCategory.TERRAIN_FEATURES, {"feature": "lake"})

        results = memory.search_memories(MemorySearch(text="IRON"))

        assert len(results) == 2

    def test_type_and_custom_filter(self, clock) -> None:
        """Type and custom predicates narrow the results."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"type": "patrol", "unit_count": 3})
        memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"type": "patrol", "unit_count": 30})
        memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"type": "army", "unit_count": 30})

        results = memory.search_memories(
            MemorySearch(type="patrol", custom_filter=lambda e: e.payload["unit_count"] > 10)
        )

        assert len(results) == 1
        assert results[0].payload["unit_count"] == 30

    def test_related_memories(self, clock) -> None:
        """Nearby entries of the same type are related."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        first_id = memory.store(
            MemoryCategory.TERRAIN_FEATURES, {"type": "river", "location": {"x": 0, "y": 0}}
        )
        memory.store(
            MemoryCategory.TERRAIN_FEATURES, {"type": "river", "location": {"x": 1, "y": 0}}
        )
        reference = memory.get_memory(first_id)
        assert reference is not None

        related = memory.get_related_memories(reference)

        assert len(related) == 1
        assert related[0].relation_score > 0.3


# =============================================================================
# Maintenance and persistence
# =============================================================================


class TestCleanup:
    """Tests for age-based cleanup."""

    def test_old_unread_low_relevance_removed(self, clock) -> None:
        """Old entries nobody read and with low relevance are purged."""
        memory = ColonyMemory(
            colony_id="c1", config=MemoryConfig(cleanup_relevance_floor=0.9), clock=clock
        )
        memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"threat_level": 0.0})
        read_id = memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"threat_level": 0.0})
        memory.get_memory(read_id)

        clock.advance(days=40)
        report = memory.cleanup()

        assert report.removed_memories == 1
        assert report.categories_cleaned == {MemoryCategory.ENEMY_MOVEMENTS.value: 1}
        assert memory.get_memory(read_id) is not None
        assert memory.last_cleanup == clock.now

    def test_recent_entries_survive(self, clock) -> None:
        """Nothing within its retention window is removed."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.ENEMY_MOVEMENTS, {"threat_level": 0.0})
        clock.advance(days=1)

        assert memory.cleanup().removed_memories == 0


class TestExportImport:
    """Tests for memory export and import."""

    def test_stats(self, clock) -> None:
        """Stats count entries per category."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.BATTLE_HISTORY, {})
        memory.store(MemoryCategory.BATTLE_HISTORY, {})

        stats = memory.get_stats()

        assert stats.total_memories == 2
        assert stats.categories[MemoryCategory.BATTLE_HISTORY.value] == 2
        usage = stats.memory_usage[MemoryCategory.BATTLE_HISTORY.value]
        assert usage.limit == 30
        assert usage.usage_percent == pytest.approx(2 / 30 * 100)

    def test_import_into_fresh_store(self, clock) -> None:
        """An export imported into a new store reproduces its entries."""
        source = ColonyMemory(colony_id="c1", clock=clock)
        memory_id = source.store(MemoryCategory.DISCOVERED_RESOURCES, {"abundance": 70})
        exported = source.export()

        target = ColonyMemory(colony_id="c1", clock=clock)
        stats = target.import_data(exported)

        assert stats.total_memories == 1
        entry = target.get_memory(memory_id)
        assert entry is not None
        assert entry.payload["abundance"] == 70

    def test_import_skips_known_ids(self, clock) -> None:
        """Importing the same export twice does not duplicate entries."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        memory.store(MemoryCategory.BATTLE_HISTORY, {})
        exported = memory.export()

        memory.import_data(exported)

        assert memory.count(MemoryCategory.BATTLE_HISTORY) == 1

    def test_import_wrong_colony_raises(self, clock) -> None:
        """An export from another colony is rejected."""
        memory = ColonyMemory(colony_id="c1", clock=clock)
        with pytest.raises(ValueError):
            memory.import_data(MemoryExport(colony_id="c2"))
