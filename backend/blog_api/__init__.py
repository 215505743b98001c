"""
Blog API Backend - Application Package Initializer
===================================================

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (validation, logging)    │  ← PostService, TransactionLog
    ├─────────────────────────────────────┤
    │   Repository (data access)          │  ← PostRepository, bound parameters
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (connection pool)        │  ← Database handle, injected
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
