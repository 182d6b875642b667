"""
Marketplace Backend — Application Package Initializer
=====================================================

What: Marks the `marketplace` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture, one vertical slice per domain entity:

    ┌─────────────────────────────────────┐
    │     Routes (controllers + wiring)   │  ← HTTP concerns, auth dependencies
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Queries, ownership rules, transactions
    ├─────────────────────────────────────┤
    │   Models (ORM) & Schemas (DTOs)     │  ← SQLAlchemy tables + Pydantic contracts
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes handle status codes and access control and delegate to services.
    Services never see a Request object and can be tested against a bare session.
"""

__version__ = "1.0.0"
