"""SQLite persistence for mileage readings."""

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


@dataclass
class MileageRecord:
    id: int
    mileage: float
    timestamp: str

    def to_dict(self) -> dict:
        return {"mileage": self.mileage, "timestamp": self.timestamp}


class MileageStore:
    """Append-only table of readings.

    A connection is opened per operation so the store can be shared by the
    threads of the HTTP server.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def initialize(self):
        """Create the records table; raises sqlite3.Error if the database is unusable."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS records ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "mileage REAL NOT NULL, "
                "timestamp TEXT NOT NULL)"
            )
            conn.commit()
        logger.info(f"Records table ready in {self.path}")

    def add(self, mileage: float) -> MileageRecord:
        """Insert a reading stamped with the current UTC time."""
        timestamp = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn:
            cur = conn.execute(
                "INSERT INTO records (mileage, timestamp) VALUES (?, ?)",
                (mileage, timestamp),
            )
            conn.commit()
            record = MileageRecord(id=cur.lastrowid, mileage=mileage, timestamp=timestamp)
        logger.info(f"Mileage {mileage} stored as record {record.id}")
        return record

    def recent(self, limit: int = 10) -> List[MileageRecord]:
        """Most recent readings first."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT id, mileage, timestamp FROM records ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [MileageRecord(id=row[0], mileage=row[1], timestamp=row[2]) for row in rows]
