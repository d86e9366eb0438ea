"""
NoteX Backend — Application Package Initializer
================================================

What: Marks the `notex` directory as a Python package.
Who:  Used by uvicorn (`notex.main:app`), pytest, and every internal import.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Middleware (readiness, logging)   │  ← one-time setup, error boundary
    ├─────────────────────────────────────┤
    │           Routes (API + UI)         │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (store, export, loader)   │  ← persistence and storage calls
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
