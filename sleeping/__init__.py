"""
Sleeping Backend: Application Package
======================================

What: Backend for the Sleeping/Aura chat-and-feed app.
Who:  Imported by uvicorn (`sleeping.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way throughout:

    ┌─────────────────────────────────────┐
    │     Routes (HTTP + WebSocket)       │  ← request parsing, status codes
    ├─────────────────────────────────────┤
    │     Services (Business Logic)       │  ← ledger, social graph, feed, relay
    ├─────────────────────────────────────┤
    │     Models & Schemas (Data)         │  ← SQLAlchemy ORM + Pydantic DTOs
    ├─────────────────────────────────────┤
    │     Database (Persistence)          │  ← async sessions, units of work
    └─────────────────────────────────────┘

    Routes never touch SQL directly; services never touch HTTP objects.
"""

__version__ = "1.0.0"
