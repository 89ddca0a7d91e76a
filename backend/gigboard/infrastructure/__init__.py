"""Infrastructure Layer — database, cache, mail and credential adapters.

Invariants:
    - Adapters implement the Protocols declared in core/repository_protocols.py
    - Failures are mapped to core/errors.py types or logged and swallowed (cache, mail)
"""
