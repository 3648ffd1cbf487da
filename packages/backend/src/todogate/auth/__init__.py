"""Authentication and authorization.

Learn: Sessions are issued by the credential subsystem (credentials.py)
and checked on every protected request through the Verifier capability.
Both paths resolve to an Identity — the only thing the rest of the app
ever sees about who is calling.
"""
