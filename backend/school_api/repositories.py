"""Repository classes encapsulating storage for each entity kind.

Each repository is small and focused on a single entity kind and
exposes the same methods regardless of backend: `find_all`,
`find_by_id`, `exists_by_id`, `find_where`, `insert`, `update` and
`delete`. Repositories return SQLModel objects; `find_by_id`, `update`
and `delete` return `None` when the id does not exist.

Repositories are grouped into a `Store`, one repository per
`EntityKind`, sharing a transaction scope. The in-memory and JSON
stores serialize writes behind one lock and are `atomic`; the SQL store
is not, so the services hand its write methods a `verify` callable that
repeats the integrity check inside the write transaction.
"""

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type
from sqlmodel import Session, SQLModel, select
from .models import EntityKind

logger = logging.getLogger("school_api.storage")


class SqlRepository:
    """CRUD operations for one SQLModel table through a `Session`.

    The write methods take an optional `verify` callable. It runs after
    the change is flushed and before the commit, inside the same
    transaction; if it raises, the transaction is rolled back.
    """
    def __init__(self, session: Session, model: Type[SQLModel]):
        self.session = session
        self.model = model

    def find_all(self) -> List[SQLModel]:
        """Return every row ordered by id."""
        stmt = select(self.model).order_by(self.model.id)
        return list(self.session.exec(stmt).all())

    def find_by_id(self, record_id: int) -> Optional[SQLModel]:
        return self.session.get(self.model, record_id)

    def exists_by_id(self, record_id: int) -> bool:
        stmt = select(self.model.id).where(self.model.id == record_id)
        return self.session.exec(stmt).first() is not None

    def find_where(self, field: str, value) -> List[SQLModel]:
        """Return rows whose `field` equals `value`."""
        stmt = select(self.model).where(getattr(self.model, field) == value).order_by(self.model.id)
        return list(self.session.exec(stmt).all())

    def insert(self, fields: dict, verify: Optional[Callable[[], None]] = None) -> SQLModel:
        """Persist a new row and return the managed instance."""
        record = self.model(**fields)
        self.session.add(record)
        self._commit(verify)
        self.session.refresh(record)
        return record

    def update(self, record_id: int, fields: dict, verify: Optional[Callable[[], None]] = None) -> Optional[SQLModel]:
        """Merge `fields` into an existing row."""
        record = self.session.get(self.model, record_id)
        if record is None:
            return None
        for key, value in fields.items():
            setattr(record, key, value)
        self.session.add(record)
        self._commit(verify)
        self.session.refresh(record)
        return record

    def delete(self, record_id: int, verify: Optional[Callable[[], None]] = None) -> Optional[SQLModel]:
        """Delete a row and return a detached copy of it."""
        record = self.session.get(self.model, record_id)
        if record is None:
            return None
        # the instance expires on commit, keep the values first
        snapshot = self.model(**record.model_dump())
        self.session.delete(record)
        self._commit(verify)
        return snapshot

    def _commit(self, verify):
        if verify is not None:
            # the flush opens the write transaction, so the check sees what the commit will
            self.session.flush()
            try:
                verify()
            except Exception:
                self.session.rollback()
                raise
        self.session.commit()


class MemoryRepository:
    """Dictionary-backed repository keyed by monotonic integer ids.

    Writes build the new row set aside, run `verify` and `_persist` on it
    and only then swap it in, so a failed write leaves no trace.
    """
    def __init__(self, model: Type[SQLModel], lock: threading.RLock):
        self.model = model
        self._lock = lock
        self._rows: Dict[int, dict] = {}
        self._next_id = 1

    def _build(self, row: dict) -> SQLModel:
        return self.model(**row)

    def _persist(self, rows: Dict[int, dict], next_id: int):
        """Hook for subclasses that write rows to durable storage."""

    def _commit(self, rows: Dict[int, dict], next_id: int, verify):
        if verify is not None:
            verify()
        self._persist(rows, next_id)
        self._rows = rows
        self._next_id = next_id

    def find_all(self) -> List[SQLModel]:
        with self._lock:
            return [self._build(row) for _, row in sorted(self._rows.items())]

    def find_by_id(self, record_id: int) -> Optional[SQLModel]:
        with self._lock:
            row = self._rows.get(record_id)
            return self._build(row) if row is not None else None

    def exists_by_id(self, record_id: int) -> bool:
        with self._lock:
            return record_id in self._rows

    def find_where(self, field: str, value) -> List[SQLModel]:
        with self._lock:
            return [self._build(row) for _, row in sorted(self._rows.items()) if row.get(field) == value]

    def insert(self, fields: dict, verify: Optional[Callable[[], None]] = None) -> SQLModel:
        with self._lock:
            record_id = self._next_id
            row = self._build({**fields, "id": record_id}).model_dump()
            self._commit({**self._rows, record_id: row}, record_id + 1, verify)
            return self._build(row)

    def update(self, record_id: int, fields: dict, verify: Optional[Callable[[], None]] = None) -> Optional[SQLModel]:
        with self._lock:
            current = self._rows.get(record_id)
            if current is None:
                return None
            row = {**current, **fields, "id": record_id}
            self._commit({**self._rows, record_id: row}, self._next_id, verify)
            return self._build(row)

    def delete(self, record_id: int, verify: Optional[Callable[[], None]] = None) -> Optional[SQLModel]:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                return None
            rows = {k: v for k, v in self._rows.items() if k != record_id}
            self._commit(rows, self._next_id, verify)
            return self._build(row)


class JsonFileRepository(MemoryRepository):
    """`MemoryRepository` mirrored to a flat JSON file.

    The file holds `{"next_id": N, "rows": [...]}` so ids of deleted rows
    are not handed out again after a restart. It is read once on creation
    and rewritten after every mutation through a temporary file so that a
    crash never leaves a truncated document behind.
    """
    def __init__(self, model: Type[SQLModel], lock: threading.RLock, path: Path):
        super().__init__(model, lock)
        self.path = Path(path)
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        document = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        # older files are a bare list of rows
        if isinstance(document, list):
            document = {"rows": document}
        rows = document.get("rows", [])
        for row in rows:
            self._rows[int(row["id"])] = row
        self._next_id = max([int(document.get("next_id", 1))] + [k + 1 for k in self._rows])
        logger.debug("loaded %d rows from %s", len(rows), self.path)

    def _persist(self, rows: Dict[int, dict], next_id: int):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        document = {"next_id": next_id, "rows": [row for _, row in sorted(rows.items())]}
        tmp.write_text(json.dumps(document, indent=2, ensure_ascii=True), encoding="utf-8")
        tmp.replace(self.path)


class Store:
    """One repository per `EntityKind` plus a shared transaction scope.

    `atomic` tells the services whether `transaction()` serializes a
    check-then-act sequence against concurrent writers.
    """
    atomic = False

    def __init__(self, repositories: dict):
        self._repositories = repositories

    def repo(self, kind: EntityKind):
        return self._repositories[kind]

    @contextmanager
    def transaction(self):
        yield self


class SqlStore(Store):
    """Store backed by SQLModel tables in a single request-scoped session."""
    def __init__(self, session: Session):
        self.session = session
        super().__init__({kind: SqlRepository(session, kind.model) for kind in EntityKind})


class MemoryStore(Store):
    """Process-local store; writes are serialized behind one re-entrant lock."""
    atomic = True

    def __init__(self):
        self._lock = threading.RLock()
        super().__init__({kind: self._make_repository(kind) for kind in EntityKind})

    def _make_repository(self, kind: EntityKind):
        return MemoryRepository(kind.model, self._lock)

    @contextmanager
    def transaction(self):
        with self._lock:
            yield self


class JsonFileStore(MemoryStore):
    """Flat-file store keeping one `<kind>.json` document per entity kind."""
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        super().__init__()
        logger.info("using JSON storage in %s", self.data_dir)

    def _make_repository(self, kind: EntityKind):
        return JsonFileRepository(kind.model, self._lock, self.data_dir / f"{kind.value}.json")
