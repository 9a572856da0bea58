"""Infrastructure Layer — database engine, tokens, OAuth client and logging.

Invariants:
    - Infrastructure never imports from core/ domain rules
    - External calls map failures to ExternalServiceError (502)
"""
