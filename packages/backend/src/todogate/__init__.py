"""todogate — session-gated, per-user task API.

Every request is classified by the route guard, resolved to an identity
through the session verifier, and handed to owner-scoped services that
never let one user see or touch another user's tasks.
"""

__version__ = "0.1.0"
