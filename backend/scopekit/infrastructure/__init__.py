"""Infrastructure Layer: reference collaborators and cross-cutting concerns.

Invariants:
    - Every driver failure is mapped to ExecutionError before leaving this layer
    - Nothing here retries: idempotency of the underlying operation is unknown
"""
