"""
Module: notibot/store.py

NotificationStore: reads and writes notification records on top of Database,
and appends scheduler events to the system log. sqlite errors surface as
PersistenceFailure.
"""
import json
import sqlite3

from notibot.scheduler.errors import PersistenceFailure
from notibot.scheduler.record import COLUMNS, NotificationRecord


class NotificationStore:
    """
    Record store used by the scheduler and the slash commands.

    Attributes:
        db (Database): Connection wrapper.
    """
    def __init__(self, db):
        self.db = db

    def get_active_records(self):
        """Return every record with is_active set, ordered by next trigger."""
        try:
            rows = self.db.fetchall(
                'SELECT * FROM notifications WHERE is_active = 1 ORDER BY next_trigger'
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Loading active notifications failed: {e}") from e
        return [NotificationRecord.from_row(row) for row in rows]

    def get_by_id(self, notif_id):
        """Return the record with this ID, or None."""
        try:
            row = self.db.fetchone('SELECT * FROM notifications WHERE id = ?', (notif_id,))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Loading notification {notif_id} failed: {e}", notif_id) from e
        return NotificationRecord.from_row(row) if row else None

    def list_for_guild(self, guild_id):
        """Return all records of a guild, active ones first, then by next trigger."""
        try:
            rows = self.db.fetchall(
                'SELECT * FROM notifications WHERE guild_id = ? '
                'ORDER BY is_active DESC, next_trigger',
                (guild_id,)
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Listing notifications of guild {guild_id} failed: {e}") from e
        return [NotificationRecord.from_row(row) for row in rows]

    def update(self, notif_id, fields):
        """
        Write only the given record attributes, leaving every other column untouched.

        Args:
            notif_id (int): Record ID.
            fields (dict): Record attribute name -> new value.
        """
        if not fields:
            return
        unknown = set(fields) - set(COLUMNS) | ({'id'} & set(fields))
        if unknown:
            raise ValueError(f"Cannot update notification attributes: {sorted(unknown)}")
        assignments = ', '.join(f'{COLUMNS[name]} = ?' for name in fields)
        params = tuple(fields.values()) + (notif_id,)
        try:
            self.db.execute(f'UPDATE notifications SET {assignments} WHERE id = ?', params)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Updating notification {notif_id} failed: {e}", notif_id) from e

    def set_active(self, notif_id, active):
        self.update(notif_id, {'active': bool(active)})

    def create(self, **fields):
        """
        Insert a new notification and return it as a record.

        Args:
            **fields: Record attribute name -> value (any attribute but id).
        """
        unknown = set(fields) - set(COLUMNS) | ({'id'} & set(fields))
        if unknown:
            raise ValueError(f"Cannot create notification with attributes: {sorted(unknown)}")
        columns = ', '.join(COLUMNS[name] for name in fields)
        placeholders = ', '.join('?' for _ in fields)
        try:
            cursor = self.db.execute(
                f'INSERT INTO notifications ({columns}) VALUES ({placeholders})',
                tuple(fields.values())
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Creating notification failed: {e}") from e
        return self.get_by_id(cursor.lastrowid)

    def delete(self, notif_id):
        try:
            self.db.execute('DELETE FROM notifications WHERE id = ?', (notif_id,))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Deleting notification {notif_id} failed: {e}", notif_id) from e

    def add_log(self, level, message, details=None):
        """Append an entry to the system log; details are stored as JSON."""
        try:
            self.db.execute(
                'INSERT INTO system_logs (level, message, details) VALUES (?, ?, ?)',
                (level, message, json.dumps(details) if details is not None else None)
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Writing system log failed: {e}") from e

