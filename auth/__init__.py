"""auth/ -- Authentication package for the users/products service.

Layer rule: auth/ imports from core/ and memdb/ plus third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
