"""
Database package for the loft booking platform.

This package provides modular database operations:
- connection: Database connection management (get_db, close_db, init_db)
- migrations: Schema migration functions
- schema: Table creation and indexes
- seed: Initial seed data
- rpc: Named stored procedures callable by name
"""

from database.connection import get_db, close_db, init_db
from database.schema import drop_tables, create_tables, create_indexes
from database.seed import seed_database

__all__ = [
    # Connection
    'get_db',
    'close_db',
    'init_db',
    # Schema
    'drop_tables',
    'create_tables',
    'create_indexes',
    # Seed
    'seed_database',
]
