"""
PotTogether Backend: Pydantic Schemas
======================================

API contract between the clients and the backend. Kept separate from the
ORM models so the wire format (camelCase keys, list-valued categories,
sparse day series) can differ from the table layout.
"""
