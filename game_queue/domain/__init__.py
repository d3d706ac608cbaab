"""
Domain layer containing the session coordination logic.

Submodules:
- session: Roster, Session, state machine and the per-host SessionRegistry.
- sweeper: Lifecycle cleanup of expired or abandoned sessions.
- commands: Text command parsing on top of the registry.
- utils: Domain-specific utilities (e.g., ID generation).
"""
