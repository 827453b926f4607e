"""auth/ -- Identity, session and authorization package for the Connected Office API.

Layer rule: auth/ imports from core/ and third-party libraries only.
It does NOT import from api/ or office/.
api/ imports from auth/, not the other way around.
"""
