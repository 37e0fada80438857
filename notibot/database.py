"""
Module: notibot/database.py

Handles SQLite database connectivity, schema initialization, and query execution
for notifications and the system log.
"""
import sqlite3
from notibot.utils import log_message


class Database:
    """
    Database wrapper for SQLite with automatic connection handling and schema setup.
    """
    def __init__(self, path='noti.db'):
        """
        Initialize the Database instance and establish the first connection.

        Args:
            path (str): SQLite file path, or ':memory:'.
        """
        self.path = path
        self.conn = None
        self.cursor = None
        self.connect()

    def connect(self):
        """
        Establish a connection to the SQLite database, set up the row factory,
        and initialize the schema if necessary.

        Reconnects if there was a previous connection.
        """
        try:
            if self.conn:
                try:
                    self.conn.close()
                except sqlite3.Error as e:
                    log_message(f"Error closing existing DB connection: {e}", "warning")

            self.conn = sqlite3.connect(self.path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.cursor = self.conn.cursor()
            self._initialize_db()

        except sqlite3.Error as e:
            log_message(f"Database connection error: {e}", "error")

    def _initialize_db(self):
        """
        Create the 'notifications' and 'system_logs' tables and indexes if they do not exist.
        """
        try:
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL DEFAULT '',
                    guild_id INTEGER,
                    channel_id INTEGER,
                    created_by INTEGER,
                    message_content TEXT,
                    embed_toggle BOOLEAN NOT NULL DEFAULT 0,
                    title TEXT,
                    description TEXT,
                    color TEXT,
                    image_url TEXT,
                    thumbnail_url TEXT,
                    footer TEXT,
                    author TEXT,
                    fields TEXT,
                    mention TEXT,
                    pattern TEXT,
                    repeat_status BOOLEAN NOT NULL DEFAULT 0,
                    repeat_frequency INTEGER,
                    is_active BOOLEAN NOT NULL DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    last_trigger INTEGER,
                    next_trigger INTEGER
                )
            ''')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_guild ON notifications (guild_id)')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_active ON notifications (is_active)')
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS system_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    level TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            self.conn.commit()
        except sqlite3.Error as e:
            log_message(f"Error initializing database schema: {e}", "error")

    def ensure_connection(self):
        """
        Verify that the current connection is alive by executing a simple query.
        If it fails, reconnect and reinitialize the schema.
        """
        try:
            self.cursor.execute('SELECT 1')
        except (AttributeError, sqlite3.ProgrammingError, sqlite3.InterfaceError, sqlite3.OperationalError) as e:
            log_message(f"Lost DB connection, reconnecting: {e}", "warning")
            self.connect()

    def execute(self, query, params=()):
        """
        Execute a modifying SQL query (INSERT/UPDATE/DELETE) with parameters,
        ensuring the connection is alive and committing after success.

        Returns the SQLite cursor for further inspection.
        """
        try:
            self.ensure_connection()
            result = self.cursor.execute(query, params)
            self.conn.commit()
            return result
        except sqlite3.Error as e:
            log_message(f"Error executing query: {e}\nQuery: {query}\nParams: {params}", "error")
            raise

    def fetchall(self, query, params=()):
        """
        Execute a SELECT query with parameters and return all fetched rows.

        Ensures the connection is alive before querying.
        """
        try:
            self.ensure_connection()
            return self.cursor.execute(query, params).fetchall()
        except sqlite3.Error as e:
            log_message(f"Error fetching data: {e}\nQuery: {query}\nParams: {params}", "error")
            raise

    def fetchone(self, query, params=()):
        """
        Execute a SELECT query with parameters and return the first row, or None.
        """
        try:
            self.ensure_connection()
            return self.cursor.execute(query, params).fetchone()
        except sqlite3.Error as e:
            log_message(f"Error fetching data: {e}\nQuery: {query}\nParams: {params}", "error")
            raise

    def close(self):
        if self.conn:
            self.conn.close()
