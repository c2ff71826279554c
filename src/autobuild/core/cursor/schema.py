"""SQLAlchemy table definitions for the durable cursor store.

Uses SQLAlchemy Core (not ORM). The store is a flat key/value table: the
pipeline cursor and every step-scoped progress key share it, so clearing a
run is a single DELETE.
"""

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text

metadata = MetaData()

state_table = Table(
    "autobuild_state",
    metadata,
    Column("key", String(255), primary_key=True),
    # JSON-encoded value
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)
