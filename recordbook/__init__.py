"""
Recordbook Backend: Application Package Initializer
====================================================

What: Marks the `recordbook` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend follows the same layered layout for every concern:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, store access, login
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine binding
    └─────────────────────────────────────┘

    Routes handle status codes and headers and delegate to services.
    Services receive their collaborators (engine, account table) at construction.
"""

__version__ = "1.0.0"
