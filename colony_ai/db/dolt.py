"""
Real Dolt database implementation for colony-ai.

Uses mysql-connector-python to connect to a Dolt SQL server. Each save is
followed by a Dolt commit so colony history can be inspected with Dolt's
versioning tools.
"""

from __future__ import annotations

import json
from typing import Any
from uuid import UUID

import mysql.connector
from mysql.connector.cursor import MySQLCursor

from colony_ai.models import AIState, Colony
from colony_ai.models.memory import MemoryExport


class DoltConnection:
    """
    Connection manager for Dolt database.

    Lazily opens one connection and reopens it if it drops.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        user: str = "root",
        password: str = "",
        database: str = "colony_ai",
    ) -> None:
        self.config = {
            "host": host,
            "port": port,
            "user": user,
            "password": password,
            "database": database,
            "autocommit": True,
        }
        self._connection: Any = None

    def get_connection(self) -> Any:
        """Get or create a database connection."""
        if self._connection is None or not self._connection.is_connected():
            self._connection = mysql.connector.connect(**self.config)
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection and self._connection.is_connected():
            self._connection.close()
            self._connection = None


class DoltColonyRepository:
    """
    Dolt implementation of the ColonyRepository interface.

    The queryable colony fields get their own columns; the full record is
    kept as JSON alongside them.
    """

    def __init__(self, connection: DoltConnection) -> None:
        self._conn = connection

    def _execute(
        self,
        query: str,
        params: tuple[Any, ...] | None = None,
        fetch: bool = True,
    ) -> list[dict[str, Any]]:
        """Execute a query and return results as list of dicts."""
        conn = self._conn.get_connection()
        cursor: MySQLCursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(query, params or ())
            if fetch:
                results = cursor.fetchall()
                return [dict(row) for row in results]  # type: ignore[arg-type]
            return []
        finally:
            cursor.close()

    def _execute_proc(self, proc_name: str, args: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        """Execute a Dolt stored procedure."""
        conn = self._conn.get_connection()
        cursor: MySQLCursor = conn.cursor(dictionary=True)
        try:
            cursor.callproc(proc_name, args)
            results = []
            for result in cursor.stored_results():
                results.extend(result.fetchall())
            return results
        finally:
            cursor.close()

    def _commit(self, message: str) -> None:
        # --allow-empty: saving an unchanged record is not an error
        self._execute_proc("dolt_commit", ("-Am", message, "--allow-empty"))

    # =========================================================================
    # Colony Operations
    # =========================================================================

    def save_colony(self, colony: Colony) -> None:
        """Insert or update a colony record."""
        query = """
            INSERT INTO colonies (
                id, name, personality, ai_state, difficulty, threat_level,
                current_strategy, adaptation_level, development_phase,
                total_ticks, active_scout_missions, growth_history, record,
                created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
            )
            ON DUPLICATE KEY UPDATE
                name = VALUES(name),
                ai_state = VALUES(ai_state),
                threat_level = VALUES(threat_level),
                current_strategy = VALUES(current_strategy),
                adaptation_level = VALUES(adaptation_level),
                development_phase = VALUES(development_phase),
                total_ticks = VALUES(total_ticks),
                active_scout_missions = VALUES(active_scout_missions),
                growth_history = VALUES(growth_history),
                record = VALUES(record),
                updated_at = VALUES(updated_at)
        """
        self._execute(
            query,
            (
                str(colony.id),
                colony.name,
                colony.personality.value,
                colony.state.value,
                colony.difficulty.value,
                colony.threat_level,
                colony.current_strategy.value,
                colony.adaptation_level,
                colony.development_phase.value,
                colony.total_ticks,
                json.dumps([m.model_dump(mode="json") for m in colony.active_scout_missions]),
                json.dumps([r.model_dump(mode="json") for r in colony.growth_history]),
                colony.model_dump_json(),
                colony.created_at,
                colony.updated_at,
            ),
            fetch=False,
        )
        self._commit(f"Save colony {colony.name} at tick {colony.total_ticks}")

    def get_colony(self, colony_id: UUID) -> Colony | None:
        """Get a colony by ID."""
        result = self._execute(
            "SELECT * FROM colonies WHERE id = %s",
            (str(colony_id),),
        )
        if not result:
            return None
        return self._row_to_colony(result[0])

    def list_colonies(self, state: AIState | None = None) -> list[Colony]:
        """List colonies, optionally only those in one behavior state."""
        if state is None:
            result = self._execute("SELECT * FROM colonies ORDER BY created_at")
        else:
            result = self._execute(
                "SELECT * FROM colonies WHERE ai_state = %s ORDER BY created_at",
                (state.value,),
            )
        return [self._row_to_colony(row) for row in result]

    def delete_colony(self, colony_id: UUID) -> bool:
        """Delete a colony and its memory."""
        if self.get_colony(colony_id) is None:
            return False
        self._execute(
            "DELETE FROM colony_memories WHERE colony_id = %s", (str(colony_id),), fetch=False
        )
        self._execute("DELETE FROM colonies WHERE id = %s", (str(colony_id),), fetch=False)
        self._commit(f"Delete colony {colony_id}")
        return True

    def _row_to_colony(self, row: dict[str, Any]) -> Colony:
        """Convert a database row to a Colony, preferring the indexed columns."""
        data = json.loads(row["record"])
        data.update(
            state=row["ai_state"],
            personality=row["personality"],
            threat_level=row["threat_level"],
            current_strategy=row["current_strategy"],
            adaptation_level=row["adaptation_level"],
            development_phase=row["development_phase"],
            total_ticks=row["total_ticks"],
            active_scout_missions=(
                json.loads(row["active_scout_missions"]) if row["active_scout_missions"] else []
            ),
            growth_history=json.loads(row["growth_history"]) if row["growth_history"] else [],
        )
        return Colony.model_validate(data)

    # =========================================================================
    # Memory Operations
    # =========================================================================

    def save_memory(self, colony_id: str, memory: MemoryExport) -> None:
        """Replace the stored memory of a colony."""
        query = """
            INSERT INTO colony_memories (colony_id, memories, export_time)
            VALUES (%s, %s, %s)
            ON DUPLICATE KEY UPDATE
                memories = VALUES(memories),
                export_time = VALUES(export_time)
        """
        self._execute(
            query,
            (colony_id, memory.model_dump_json(), memory.export_time),
            fetch=False,
        )
        self._commit(f"Save memory for colony {colony_id}")

    def get_memory(self, colony_id: str) -> MemoryExport | None:
        """Get the stored memory of a colony."""
        result = self._execute(
            "SELECT memories FROM colony_memories WHERE colony_id = %s",
            (colony_id,),
        )
        if not result or not result[0]["memories"]:
            return None
        return MemoryExport.model_validate_json(result[0]["memories"])


# =============================================================================
# Schema Initialization
# =============================================================================

DOLT_SCHEMA = """
-- AI colonies
CREATE TABLE IF NOT EXISTS colonies (
    id VARCHAR(36) PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    personality VARCHAR(50) NOT NULL,
    ai_state VARCHAR(50) NOT NULL DEFAULT 'idle',
    difficulty VARCHAR(50) NOT NULL DEFAULT 'medium',
    threat_level DOUBLE NOT NULL DEFAULT 0,
    current_strategy VARCHAR(50) NOT NULL DEFAULT 'balanced',
    adaptation_level DOUBLE NOT NULL DEFAULT 0,
    development_phase VARCHAR(50) NOT NULL DEFAULT 'early',
    total_ticks INT NOT NULL DEFAULT 0,
    active_scout_missions JSON,
    growth_history JSON,
    record JSON NOT NULL,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    INDEX idx_ai_state (ai_state),
    INDEX idx_personality (personality)
);

-- Serialized colony memory, one row per colony
CREATE TABLE IF NOT EXISTS colony_memories (
    colony_id VARCHAR(36) PRIMARY KEY,
    memories JSON NOT NULL,
    export_time DATETIME NOT NULL
);
"""


def init_dolt_schema(connection: DoltConnection) -> None:
    """Initialize the Dolt database schema."""
    conn = connection.get_connection()
    cursor = conn.cursor()
    try:
        for statement in DOLT_SCHEMA.split(";"):
            statement = statement.strip()
            if statement:
                cursor.execute(statement)
        conn.commit()
    finally:
        cursor.close()
