"""
School Registry Backend: Application Package
==============================================

Layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (SchoolService, images)  │  ← validation, orchestration
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy table + Pydantic
    ├─────────────────────────────────────┤
    │     Database handle (Persistence)   │  ← pooled async engine
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
