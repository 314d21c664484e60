"""Column types shared by the ledger models.

Production runs on PostgreSQL, local development and the test suite on
SQLite; both types below render natively on each.
"""
from sqlalchemy import JSON, Uuid

# Schedule run results; JSONB would tie the models to PostgreSQL
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid
