# API Routers - authgate
# Users and admins authenticate separately; roles gate admin operations.

from authgate.routers import admin_users, health, roles, users

__all__ = ["admin_users", "health", "roles", "users"]
