"""BulkCode Application Package — single-use discount codes replicated from a master template.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
