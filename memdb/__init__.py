"""memdb/ -- In-memory storage layer for the users/products service.

Layer rule: memdb/ imports only stdlib. It does NOT import from api/,
auth/, or core/. Callers construct a MemoryDB explicitly and pass it
where it is needed; there is no module-level store instance.
"""
