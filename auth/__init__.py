"""auth/ -- Authentication package for SiteCMS.

Token codec (tokens.py), failed-login limiter (limiter.py), session gate
(session.py) and the login/logout service (service.py).

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
