"""
Authentication application.

Email-based identity for buyers and organizers.

Key components:
    - User model: Custom email-based user authentication
    - Profile model: Display names, auto-created with each user

Usage:
    from authentication.models import User, Profile
"""
