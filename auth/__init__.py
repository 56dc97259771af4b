"""auth/ -- Authentication core: accounts, passwords, tokens and sessions.

Layer rule: auth/ imports only core/ + third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
