"""
Stateless OAuth2 login for the web UI.

Design goals:
- No server-side session store: CSRF state and sessions are signed, expiring tokens.
- Cookie-based session (HttpOnly) for same-origin UI.
- One verification entry point (`deps.authenticate_request`) for every other handler.
"""
