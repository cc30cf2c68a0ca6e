"""
vulndb/store.py -- SQLAlchemy-backed persistence for canonical vulnerabilities.

Uses SQLAlchemy Core (not ORM) so the dataclasses in core/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

A vulnerability row is identified by (name, namespace). Each updater run
supersedes the rows it emits: the previous row for the same identity and all
its affected features are deleted and the new ones inserted, inside the same
transaction as the watermark write (see commit_update).

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = VulnStore()                               # SQLite default
    store = VulnStore("postgresql://user:pw@host/db") # PostgreSQL
    store.find_key_value("debianUpdater")             # str or None
    store.commit_update(response)                     # batch + watermark, atomically
    store.close()
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Connection, Engine

from core.config import get_settings
from core.models import (
    AffectedFeature,
    FeatureType,
    Namespace,
    Severity,
    UpdateResponse,
    Vulnerability,
    VulnerabilityWithAffected,
)

logger = logging.getLogger("vulnsrc.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_key_values = Table(
    "key_values",
    metadata,
    Column("key", String(128), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_vulnerabilities = Table(
    "vulnerabilities",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(128), nullable=False),
    Column("namespace", String(128), nullable=False),
    Column("version_format", String(32), nullable=False),
    Column("link", Text),
    Column("severity", String(16), nullable=False, server_default=Severity.UNKNOWN.value),
    Column("description", Text),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("name", "namespace", name="uq_vuln_namespace"),
)

_affected = Table(
    "affected_features",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("vulnerability_id", Integer, nullable=False, index=True),
    Column("feature_name", String(255), nullable=False),
    Column("feature_type", String(16), nullable=False),
    Column("affected_version", String(255), nullable=False),
    Column("fixed_in_version", String(255), nullable=False, server_default=""),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by an updater commit."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class VulnStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Key / value
    # ------------------------------------------------------------------

    def find_key_value(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None.

        The connection is never committed, so closing it rolls the read-only
        transaction back.
        """
        with self.engine.connect() as conn:
            row = conn.execute(select(_key_values.c.value).where(_key_values.c.key == key)).fetchone()
        return row.value if row is not None else None

    def set_key_value(self, key: str, value: str) -> None:
        """Store value under key, replacing any existing value wholesale."""
        with self.engine.begin() as conn:
            _write_key_value(conn, key, value)

    # ------------------------------------------------------------------
    # Vulnerabilities
    # ------------------------------------------------------------------

    def upsert_vulnerabilities(self, vulnerabilities: list[VulnerabilityWithAffected]) -> int:
        """Insert or supersede a batch. Returns the number of vulnerability rows written."""
        with self.engine.begin() as conn:
            return _write_vulnerabilities(conn, vulnerabilities)

    def commit_update(self, response: UpdateResponse) -> int:
        """Persist an updater's batch and its new watermark in one transaction.

        When the response carries no flag (no forward progress) the stored
        watermark is left untouched. Returns the number of rows written.
        """
        with self.engine.begin() as conn:
            written = _write_vulnerabilities(conn, response.vulnerabilities)
            if response.has_flag:
                _write_key_value(conn, response.flag_name, response.flag_value)
        return written

    def get_vulnerability(self, name: str, namespace: str) -> Optional[VulnerabilityWithAffected]:
        """Fetch one vulnerability with the features recorded for namespace."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _vulnerabilities.select().where(
                    (_vulnerabilities.c.name == name) & (_vulnerabilities.c.namespace == namespace)
                )
            ).fetchone()
            if row is None:
                return None
            features = conn.execute(
                _affected.select().where(_affected.c.vulnerability_id == row.id).order_by(_affected.c.id)
            ).fetchall()
        return _row_to_vulnerability(row, features)

    def count_vulnerabilities(self, namespace: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(_vulnerabilities)
        if namespace is not None:
            stmt = stmt.where(_vulnerabilities.c.namespace == namespace)
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Writers (shared by the single-purpose methods and commit_update)
# ---------------------------------------------------------------------------


def _write_key_value(conn: Connection, key: str, value: str) -> None:
    conn.execute(_key_values.delete().where(_key_values.c.key == key))
    conn.execute(_key_values.insert().values(key=key, value=value, updated_at=_now_iso()))


def _write_vulnerabilities(conn: Connection, vulnerabilities: list[VulnerabilityWithAffected]) -> int:
    written = 0
    now = _now_iso()
    for vwa in vulnerabilities:
        by_namespace: dict[Namespace, list[AffectedFeature]] = defaultdict(list)
        for feature in vwa.affected:
            by_namespace[feature.namespace].append(feature)
        if not by_namespace:
            logger.debug("%s has no affected features, not stored", vwa.name)
            continue

        vuln = vwa.vulnerability
        for namespace, features in by_namespace.items():
            existing = conn.execute(
                select(_vulnerabilities.c.id).where(
                    (_vulnerabilities.c.name == vuln.name) & (_vulnerabilities.c.namespace == namespace.name)
                )
            ).fetchone()
            if existing is not None:
                conn.execute(_affected.delete().where(_affected.c.vulnerability_id == existing.id))
                conn.execute(_vulnerabilities.delete().where(_vulnerabilities.c.id == existing.id))

            result = conn.execute(
                _vulnerabilities.insert().values(
                    name=vuln.name,
                    namespace=namespace.name,
                    version_format=namespace.version_format,
                    link=vuln.link,
                    severity=vuln.severity.value,
                    description=vuln.description,
                    updated_at=now,
                )
            )
            vuln_id = result.inserted_primary_key[0]
            conn.execute(
                _affected.insert(),
                [
                    {
                        "vulnerability_id": vuln_id,
                        "feature_name": f.feature_name,
                        "feature_type": f.feature_type.value,
                        "affected_version": f.affected_version,
                        "fixed_in_version": f.fixed_in_version,
                    }
                    for f in features
                ],
            )
            written += 1
    return written


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_vulnerability(row, features) -> VulnerabilityWithAffected:
    namespace = Namespace(name=row.namespace, version_format=row.version_format)
    return VulnerabilityWithAffected(
        vulnerability=Vulnerability(
            name=row.name,
            link=row.link or "",
            severity=Severity(row.severity),
            description=row.description or "",
        ),
        affected=[
            AffectedFeature(
                namespace=namespace,
                feature_name=f.feature_name,
                feature_type=FeatureType(f.feature_type),
                affected_version=f.affected_version,
                fixed_in_version=f.fixed_in_version or "",
            )
            for f in features
        ],
    )
