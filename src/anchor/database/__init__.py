"""
Database package for Anchor.

- **db_connection.py**: single long-lived aiosqlite connection with WAL
  pragmas and serialized write transactions.
- **db_schema.py**: table, index and trigger creation plus version tracking.
- **database.py**: coordinator that opens the connection, creates the schema
  and exposes the repositories.
"""
