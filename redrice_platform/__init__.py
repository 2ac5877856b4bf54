"""RedRice restaurant reservation platform - Backend.

A small REST API over three resources:
- users (registration, sign-in, profile)
- restaurants (multipart forms with an optional image stored in S3)
- reservations (a user booking a restaurant at a date/time)

Every route except registration, sign-in and /health needs a bearer JWT.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
