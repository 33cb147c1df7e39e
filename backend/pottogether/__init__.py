"""
PotTogether Backend: Application Package
========================================

What: Shared cooking rooms ("pots"), timed ingredient records and the
      progress views built from them.
Who:  Imported by uvicorn (`pottogether.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← envelope, status codes, identity
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← rooms, records, overviews
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← injected async session factory
    └─────────────────────────────────────┘

    Services receive the session they work in as an argument; they never
    reach for a global connection.
"""

__version__ = "1.0.0"
