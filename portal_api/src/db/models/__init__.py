"""
ORM models for the portal: tenants and users, the three reviewable sources
(commission submissions, employee requests, warranty requests) and the audit log.

Importing this package registers every mapped class with the Base metadata
for Alembic and runtime usage.
"""

from .security import (  # noqa: F401
    Tenant,
    User,
    Role,
    UserRole,
)
from .commissions import CommissionSubmission  # noqa: F401
from .requests import EmployeeRequest  # noqa: F401
from .warranties import WarrantyRequest  # noqa: F401
from .audit import AuditLogEntry  # noqa: F401
