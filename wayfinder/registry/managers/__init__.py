"""Data access managers for the workspace registry.

Each module provides async functions that encapsulate record operations
and business logic.  Managers accept a ``RecordStore`` as a parameter
and raise domain exceptions (``RecordNotFoundError``, ``ValueError``), never
HTTP exceptions -- that translation is the router's responsibility.
"""
