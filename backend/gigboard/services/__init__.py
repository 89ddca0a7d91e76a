"""Services Layer — transactional use cases around the pure core.

Invariants:
    - Every mutation runs inside one transaction(db) scope
    - Cache invalidation and mail delivery happen only after commit
    - One service class per aggregate (projects, applications, ratings, meetings, accounts)
"""
