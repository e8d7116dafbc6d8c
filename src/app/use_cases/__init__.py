"""
Use Cases

Organized into domain folders:
- auth/: Login, step-up PIN, magic links, password reset, session validation
- sessions/: Session listing and revocation
- oauth/: Authorization server and client registry
- audit/: Audit logs

Import from the subdirectories.
"""
