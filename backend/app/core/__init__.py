"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Template parsing, request replication, code normalization and progress
      reporting are pure and deterministic
"""
