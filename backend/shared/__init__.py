"""
Shared module for cross-cutting concerns of the REST API and the CLI.

- shared.config: settings (pydantic-settings), structured logging, constants
- shared.infrastructure: SQLAlchemy sessions, store_guard(), Redis events
- shared.security: identity-provider JWT verification, rate limiting
- shared.utils: HTTP exceptions with auto-logging, validators, schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, OrderStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
