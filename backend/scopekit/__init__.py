"""ScopeKit: composable query scopes, lifecycle enums and cache policy.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
