"""
Storefront Backend — Application Package Initializer
=====================================================

What: Marks the `storefront` directory as a Python package.
Who:  Imported by uvicorn (`storefront.main:app`), pytest, and the admin seed command.

Architecture Note:
    The backend keeps a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← multipart/JSON parsing, envelopes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← upload → write → cleanup choreography
    ├─────────────────────────────────────┤
    │   Document Store & Schemas (Data)   │  ← Mongo collections + pydantic contracts
    ├─────────────────────────────────────┤
    │     Database / Asset Host (I/O)     │  ← async pymongo client, Cloudinary
    └─────────────────────────────────────┘

    Routes never talk to Mongo or Cloudinary directly; services own the ordering
    between the remote asset store and the database.
"""

__version__ = "1.0.0"
