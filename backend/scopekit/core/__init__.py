"""Core Layer: pure plan building, lifecycle tables and cache policy. No IO.

Invariants:
    - No module in core/ imports from services/, infrastructure/, models/ or db/
    - All functions are pure and deterministic; all values they return are immutable

Design Decisions:
    - Functional core separated from imperative shell: executors and stores are
      Protocols implemented in infrastructure/
"""
