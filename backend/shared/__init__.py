"""
Shared module for common utilities across the REST API and WS Gateway.

CLEAN ARCHITECTURE STRUCTURE:
- shared.security: Authentication and authorization
  - auth.py: JWT signing/verification, token cookies, current_user, require_roles
  - password.py: Bcrypt hashing
  - rate_limit.py: slowapi limiter for auth endpoints

- shared.infrastructure: Database and request context
  - db.py: SQLAlchemy engine, sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: UserRole, RegistrationStatus, Cookies, Limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Password policy, LIKE escaping, room ids
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.security.auth import current_user, require_roles
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import UserRole, RegistrationStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
