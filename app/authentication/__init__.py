"""
Authentication application.

Business owners and their helpers, authenticated by email and a
SimpleJWT token pair.

Key components:
    - User model: Email-based user with an OWNER or HELPER role
    - UserManager: create_user / create_superuser / owners()

Usage:
    from authentication.models import User
"""
