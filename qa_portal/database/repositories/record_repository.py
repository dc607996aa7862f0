from collections.abc import Iterable
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row

from qa_portal.database.connection import get_connection
from qa_portal.records.exceptions import NotFoundError
from qa_portal.records.kinds import RecordKind
from qa_portal.records.models import (
    BlobRef,
    FilesystemBlobRef,
    InlineBlobRef,
    NewRecord,
    Record,
    RecordStatus,
)

_METADATA_COLUMNS = (
    "id, title, {date_column} AS secondary_date, file_name, file_mimetype, "
    "status, uploaded_at"
)


class RecordRepository:
    """Database operations for one record kind's table."""

    def __init__(self, kind: RecordKind) -> None:
        self._kind = kind
        self._table = sql.Identifier(kind.table)
        self._columns = sql.SQL(_METADATA_COLUMNS).format(
            date_column=sql.Identifier(kind.date_column)
        )

    @property
    def kind(self) -> RecordKind:
        return self._kind

    def create(self, record: NewRecord) -> int:
        """Insert a record and return the id assigned by the database."""
        file_path, file_data = _split_blob(record.blob)
        query = sql.SQL(
            """
            INSERT INTO {table}
                (title, {date_column}, file_name, file_mimetype,
                 file_path, file_data, status)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """
        ).format(table=self._table, date_column=sql.Identifier(self._kind.date_column))
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    query,
                    (
                        record.title,
                        record.secondary_date,
                        record.file_name,
                        record.file_mimetype,
                        file_path,
                        file_data,
                        int(record.status),
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(f"Insert into {self._kind.table} returned no id")
        return int(row[0])

    def find_by_id(self, record_id: int) -> Record:
        """Find a record by ID, payload reference included.

        Raises:
            NotFoundError: if no record with this ID exists.
        """
        query = sql.SQL(
            """
            SELECT {columns}, file_path, file_data
            FROM {table}
            WHERE id = %s
            """
        ).format(columns=self._columns, table=self._table)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (record_id,))
                row = cur.fetchone()

        if row is None:
            raise NotFoundError(f"{self._kind.label} {record_id} not found")

        return self._to_record(row, blob=_join_blob(row["file_path"], row["file_data"]))

    def list_by_status(self, status: RecordStatus) -> list[Record]:
        """List records with the given status, most recently uploaded first.

        Listing rows carry no payload.
        """
        query = sql.SQL(
            """
            SELECT {columns}
            FROM {table}
            WHERE status = %s
            ORDER BY uploaded_at DESC, id DESC
            """
        ).format(columns=self._columns, table=self._table)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (int(status),))
                rows = cur.fetchall()

        return [self._to_record(row) for row in rows]

    def set_status(
        self,
        record_id: int,
        new_status: RecordStatus,
        from_statuses: Iterable[RecordStatus],
    ) -> int:
        """Move a record to new_status if it currently holds one of from_statuses.

        Returns the number of affected rows: 0 when the id is unknown or the
        transition is not allowed from the current status.
        """
        query = sql.SQL(
            """
            UPDATE {table}
            SET status = %s
            WHERE id = %s
              AND status = ANY(%s)
            """
        ).format(table=self._table)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    query,
                    (int(new_status), record_id, [int(s) for s in from_statuses]),
                )
                affected = cur.rowcount
            conn.commit()
        return affected

    def _to_record(self, row: dict[str, Any], blob: BlobRef | None = None) -> Record:
        return Record(
            id=row["id"],
            kind=self._kind.name,
            title=row["title"],
            secondary_date=row["secondary_date"],
            file_name=row["file_name"],
            file_mimetype=row["file_mimetype"],
            status=RecordStatus(row["status"]),
            uploaded_at=row["uploaded_at"],
            blob=blob,
        )


def _split_blob(blob: BlobRef) -> tuple[str | None, bytes | None]:
    if isinstance(blob, FilesystemBlobRef):
        return blob.path, None
    return None, blob.data


def _join_blob(file_path: str | None, file_data: bytes | None) -> BlobRef | None:
    if file_path:
        return FilesystemBlobRef(path=file_path)
    if file_data is not None:
        return InlineBlobRef(data=bytes(file_data))
    return None
