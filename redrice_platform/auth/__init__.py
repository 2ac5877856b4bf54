"""Authentication / authorization helpers.

Auth is deliberately lightweight:

- Users table (email/password hash + role)
- Stateless JWT access tokens sent as `Authorization: Bearer <token>`
- Role -> capability mapping for authorization checks

Tokens are never stored server-side, so they stay valid until they expire or
the signing secret is rotated.
"""

from .crud import bootstrap_admin_if_needed, create_user
from .deps import get_current_user
from .permissions import require_capability

__all__ = [
    "get_current_user",
    "require_capability",
    "bootstrap_admin_if_needed",
    "create_user",
]
