"""SQLite persistence of risk records and run metadata.

Two tables live in one database file per city:

- ``risk_points``: one row per valid risk record per run (point id,
  coordinates, joined attributes, hazard, vulnerability, risk score,
  quadrant), keyed by (run_id, point_id)
- ``runs``: one row per run with the main parameters, counts, the full
  resolved configuration and the summary as JSON

The connection is opened inside each call and closed before it returns.
Nothing is written for a run unless the caller hands over a complete result.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from aura.schemas import InternalConfig

__all__ = ['ResultsStore', 'generate_run_id']

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    """UTC timestamp plus a short random suffix, e.g. 20250101T120000Z_1a2b3c."""
    return f"{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}_{uuid.uuid4().hex[:6]}"


class ResultsStore:
    """Persist and query pipeline results.

    Parameters
    ----------
    db_path : str or Path
        SQLite database file (created on first write).
    compression : str, default "snappy"
        Parquet compression codec, or "none".
    """

    def __init__(self, db_path, compression: str = "snappy"):
        self.db_path = Path(db_path)
        self.compression = None if compression == "none" else compression

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self, conn: sqlite3.Connection):
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
                run_id TEXT PRIMARY KEY,
                city TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                start_year INTEGER,
                end_year INTEGER,
                resolution_m REAL,
                sample_size INTEGER,
                seed INTEGER,
                raw_count INTEGER,
                valid_count INTEGER,
                config_json TEXT NOT NULL,
                summary_json TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_city ON runs (city)")

    def save_run(self, run_id: str, config, summary, records: pd.DataFrame) -> None:
        """Write one run's records and metadata in a single transaction.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        config : InternalConfig
            Resolved configuration of the run.
        summary : RiskSummary
            Run summary.
        records : pd.DataFrame
            Scored valid records.
        """
        created_at = datetime.now(timezone.utc).isoformat()
        rows = records.copy()
        rows.insert(0, "run_id", run_id)
        rows["created_at"] = created_at

        with closing(self._connect()) as conn:
            with conn:
                self._create_tables(conn)
                conn.execute(
                    "INSERT INTO runs VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        run_id,
                        config.region.name,
                        created_at,
                        config.period.start_year,
                        config.period.end_year,
                        config.grid.resolution_m,
                        config.sampling.sample_size,
                        config.sampling.seed,
                        summary.raw_count,
                        summary.valid_count,
                        json.dumps(config.model_dump(mode="json", by_alias=True)),
                        json.dumps(summary.to_dict()),
                    ),
                )
                rows.to_sql("risk_points", conn, if_exists="append", index=False)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_points_run ON risk_points (run_id, point_id)"
                )
        logger.info("Stored run %s: %d records in %s", run_id, len(rows), self.db_path)

    def load_records(self, run_id: Optional[str] = None) -> pd.DataFrame:
        """Risk records of one run (or of all runs)."""
        if not self.db_path.exists():
            return pd.DataFrame()
        with closing(self._connect()) as conn:
            if run_id is None:
                return pd.read_sql("SELECT * FROM risk_points ORDER BY run_id, point_id", conn)
            return pd.read_sql(
                "SELECT * FROM risk_points WHERE run_id = ? ORDER BY point_id", conn, params=(run_id,)
            )

    def load_runs(self) -> pd.DataFrame:
        """All stored runs, oldest first."""
        if not self.db_path.exists():
            return pd.DataFrame()
        with closing(self._connect()) as conn:
            return pd.read_sql("SELECT * FROM runs ORDER BY created_at", conn)

    def load_summary(self, run_id: str) -> dict:
        """Summary JSON of one run."""
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT summary_json FROM runs WHERE run_id = ?", (run_id,)).fetchone()
        if row is None:
            raise KeyError(f"No run '{run_id}' in {self.db_path}")
        return json.loads(row[0])

    def load_config(self, run_id: str):
        """Resolved configuration a run was made with, as an InternalConfig."""
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT config_json FROM runs WHERE run_id = ?", (run_id,)).fetchone()
        if row is None:
            raise KeyError(f"No run '{run_id}' in {self.db_path}")
        return InternalConfig.model_validate(json.loads(row[0]))

    def export_parquet(self, filepath, run_id: Optional[str] = None) -> Optional[Path]:
        """Export risk records to Parquet.

        Returns
        -------
        Path or None
            Written file, or None when there is nothing to export.
        """
        df = self.load_records(run_id)
        if df.empty:
            logger.warning("No results to export")
            return None
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        df.to_parquet(filepath, engine="pyarrow", compression=self.compression, index=False)
        logger.info("Exported %d rows to: %s", len(df), filepath)
        return filepath
