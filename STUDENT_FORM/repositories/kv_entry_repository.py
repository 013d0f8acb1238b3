from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from models.kv_entry import KVEntry

# dialects with INSERT ... ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class KVEntryRepository:

    @staticmethod
    def get_by_key(db: Session, key: str) -> Optional[KVEntry]:
        return db.query(KVEntry).filter(KVEntry.key == key).first()

    @staticmethod
    def upsert(db: Session, key: str, value: str, expires_at: Optional[datetime]) -> None:
        """Insert or overwrite ``key``; concurrent writers never conflict, the last one wins."""
        now = datetime.now(timezone.utc)
        insert = UPSERT_INSERTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(KVEntry).values(key=key, value=value, expires_at=expires_at, created_at=now, updated_at=now)
            stmt = stmt.on_conflict_do_update(
                index_elements=[KVEntry.key],
                set_={
                    "value": stmt.excluded.value,
                    "expires_at": stmt.excluded.expires_at,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            db.execute(stmt)
            db.commit()
            return

        changes = {KVEntry.value: value, KVEntry.expires_at: expires_at, KVEntry.updated_at: now}
        if db.query(KVEntry).filter(KVEntry.key == key).update(changes, synchronize_session=False):
            db.commit()
            return
        try:
            db.add(KVEntry(key=key, value=value, expires_at=expires_at, created_at=now, updated_at=now))
            db.commit()
        except IntegrityError:
            # another writer inserted the key first
            db.rollback()
            db.query(KVEntry).filter(KVEntry.key == key).update(changes, synchronize_session=False)
            db.commit()

    @staticmethod
    def delete_by_key(db: Session, key: str) -> int:
        deleted = db.query(KVEntry).filter(KVEntry.key == key).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def delete_expired(db: Session, cutoff: datetime) -> int:
        return (
            db.query(KVEntry)
            .filter(KVEntry.expires_at.isnot(None), KVEntry.expires_at < cutoff)
            .delete(synchronize_session=False)
        )
