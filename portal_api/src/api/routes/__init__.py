"""
API route modules, included by src.api.main under the /api/v1 prefix.

- Auth: login, register, logout, refresh, and current user
- Users: employee administration and role assignment
- Pending Review: the reviewer/submitter worklist and its SLA snapshot
- Commissions, Requests: listing plus review actions
- Warranties: warranty claim listing
- Audit: audit log of review actions
"""
