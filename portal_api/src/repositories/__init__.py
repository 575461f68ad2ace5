"""
Repository layer for data access.

One repository per entity (commissions, requests, warranties, audit log,
users/roles). Repositories assume the AsyncSession already carries tenant
context (see src.core.deps.get_tenant_session / src.db.session.tenant_session_scope).
"""
