"""
Business logic services.

Routers stay thin; the work happens here:
- security: password hashing, session token digests
- identity: registration, login, OAuth find-or-create
- sessions: session stores and the per-request session manager
- oauth: Google / GitHub authorization-code providers
- rate_limiter: slowapi limiter for credential endpoints
"""
