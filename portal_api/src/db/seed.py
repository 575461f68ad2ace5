"""
Database seeding for a demo tenant.

Seeds:
- Base tenant (Summit Roofing)
- admin, manager and employee roles, with one account each
- Commission submissions, requests and warranty claims spread over the
  review states so the pending-review worklist has something to show

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import get_password_hash
from src.core.settings import get_app_settings
from src.db.session import get_async_session, tenant_context

logger = logging.getLogger(__name__)

_ROLES = {
    "admin": "Administrator",
    "manager": "Sales manager",
    "employee": "Employee",
}

_USERS = [
    ("admin@summitroofing.example", "Avery Admin", "admin"),
    ("manager@summitroofing.example", "Morgan Manager", "manager"),
    ("rep@summitroofing.example", "Riley Rep", "employee"),
]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the default tenant with roles, demo accounts and sample review items.

    Safe to run repeatedly: rows are upserted or skipped when present.
    """
    settings = get_app_settings()
    async for session in get_async_session():
        tenant_id = await _ensure_base_tenant(session, name="Summit Roofing", slug=settings.DEFAULT_TENANT_SLUG)
        async with tenant_context(session, tenant_id):
            role_ids = await _seed_roles(session)
            user_ids = await _seed_users(session, role_ids, settings.SEED_USER_PASSWORD)
            await _seed_review_items(session, user_ids)
        await session.commit()
    logger.info("Seeded tenant %s", settings.DEFAULT_TENANT_SLUG)


async def _ensure_base_tenant(session: AsyncSession, name: str, slug: str) -> UUID:
    """
    Ensure a tenant row exists. RLS on tenants requires setting app.tenant_id
    to the same id being inserted (WITH CHECK id = current_setting()).
    """
    res = await session.execute(text("SELECT id FROM tenants WHERE slug = :slug"), {"slug": slug})
    row = res.first()
    if row:
        return row[0]

    tenant_id = uuid4()
    await session.execute(text("SELECT set_config('app.tenant_id', :tid, false)"), {"tid": str(tenant_id)})
    await session.execute(
        text("INSERT INTO tenants (id, name, slug) VALUES (:id, :name, :slug) ON CONFLICT (slug) DO NOTHING"),
        {"id": str(tenant_id), "name": name, "slug": slug},
    )
    res = await session.execute(text("SELECT id FROM tenants WHERE slug = :slug"), {"slug": slug})
    row = res.first()
    if not row:
        raise RuntimeError("Failed to create or load base tenant")
    return row[0]


async def _seed_roles(session: AsyncSession) -> Dict[str, UUID]:
    role_ids: Dict[str, UUID] = {}
    for name, description in _ROLES.items():
        await session.execute(
            text(
                """
                INSERT INTO roles (tenant_id, name, description)
                VALUES (current_setting('app.tenant_id', true)::uuid, :name, :desc)
                ON CONFLICT ON CONSTRAINT uq_roles_tenant_name DO NOTHING
                """
            ),
            {"name": name, "desc": description},
        )
        res = await session.execute(text("SELECT id FROM roles WHERE name = :name"), {"name": name})
        role_ids[name] = res.scalar_one()
    return role_ids


async def _seed_users(session: AsyncSession, role_ids: Dict[str, UUID], password: str) -> Dict[str, UUID]:
    hashed = get_password_hash(password)
    user_ids: Dict[str, UUID] = {}
    for email, full_name, role in _USERS:
        await session.execute(
            text(
                """
                INSERT INTO users (tenant_id, email, full_name, hashed_password)
                VALUES (current_setting('app.tenant_id', true)::uuid, :email, :full_name, :hashed)
                ON CONFLICT ON CONSTRAINT uq_users_tenant_email DO NOTHING
                """
            ),
            {"email": email, "full_name": full_name, "hashed": hashed},
        )
        res = await session.execute(text("SELECT id FROM users WHERE email = :email"), {"email": email})
        user_id = res.scalar_one()
        await session.execute(
            text(
                """
                INSERT INTO user_roles (tenant_id, user_id, role_id)
                VALUES (current_setting('app.tenant_id', true)::uuid, :uid, :rid)
                ON CONFLICT ON CONSTRAINT uq_user_roles_tenant_user_role DO NOTHING
                """
            ),
            {"uid": str(user_id), "rid": str(role_ids[role])},
        )
        user_ids[role] = user_id
    return user_ids


async def _seed_review_items(session: AsyncSession, user_ids: Dict[str, UUID]) -> None:
    """Insert sample items once; skipped when the tenant already has commissions."""
    res = await session.execute(text("SELECT count(*) FROM commission_submissions"))
    if res.scalar_one():
        return

    rep = str(user_ids["employee"])
    manager = str(user_ids["manager"])

    commissions = [
        # job_name, address, status, submitted_by, manager submission, days ago, reason
        ("Hartley Residence", "114 Oak Ridge Dr", "pending_review", rep, False, 4, None),
        ("Lakeside Dental", "2200 Shoreline Blvd", "pending_review", manager, True, 1, None),
        ("Gomez Re-roof", "9 Birch Ct", "revision_required", rep, False, 2, "Contract amount does not match signed contract"),
    ]
    for job_name, address, status, submitted_by, is_mgr, days_ago, reason in commissions:
        await session.execute(
            text(
                """
                INSERT INTO commission_submissions
                    (tenant_id, job_name, job_address, job_type, status, submitted_by,
                     is_manager_submission, approval_stage, contract_amount, rejection_reason,
                     revision_count, created_at, updated_at)
                VALUES (current_setting('app.tenant_id', true)::uuid, :job_name, :address, 'residential',
                        :status, :submitted_by, :is_mgr, :stage, 18500, :reason,
                        :revisions,
                        now() - make_interval(days => :days), now() - make_interval(days => :days))
                """
            ),
            {
                "job_name": job_name,
                "address": address,
                "status": status,
                "submitted_by": submitted_by,
                "is_mgr": is_mgr,
                "stage": "pending_admin" if is_mgr else "pending_manager",
                "reason": reason,
                "revisions": 0 if reason is None else 1,
                "days": days_ago,
            },
        )

    requests = [
        ("Time off: Nov 3-5", "time_off", "pending", None, 3),
        ("New harness and lanyard", "equipment_purchase", "needs_info", "Which size?", 1),
        ("Mileage reimbursement", "reimbursement", "rejected", "Attach the mileage log", 5),
    ]
    for title, req_type, status, note, days_ago in requests:
        await session.execute(
            text(
                """
                INSERT INTO requests
                    (tenant_id, title, type, status, submitted_by, manager_notes, rejection_reason,
                     created_at, updated_at)
                VALUES (current_setting('app.tenant_id', true)::uuid, :title, :type, :status, :submitted_by,
                        :manager_notes, :rejection_reason,
                        now() - make_interval(days => :days), now() - make_interval(days => :days))
                """
            ),
            {
                "title": title,
                "type": req_type,
                "status": status,
                "submitted_by": rep,
                "manager_notes": note if status == "needs_info" else None,
                "rejection_reason": note if status == "rejected" else None,
                "days": days_ago,
            },
        )

    warranties = [
        ("Dana Whitfield", "77 Crestview Ln", "new", "emergency", "Active leak over kitchen", 0),
        ("Pine Hollow HOA", "1 Pine Hollow Way", "in_progress", "medium", "Lifted shingles on north slope", 6),
        ("Carlos Ortega", "418 Mesa St", "completed", "low", "Gutter seam", 20),
    ]
    for customer, address, status, priority, issue, days_ago in warranties:
        await session.execute(
            text(
                """
                INSERT INTO warranty_requests
                    (tenant_id, customer_name, job_address, status, priority_level, issue_description,
                     roof_type, date_submitted, created_at, updated_at)
                VALUES (current_setting('app.tenant_id', true)::uuid, :customer, :address, :status, :priority,
                        :issue, 'asphalt_shingle', now() - make_interval(days => :days),
                        now() - make_interval(days => :days), now() - make_interval(days => :days))
                """
            ),
            {
                "customer": customer,
                "address": address,
                "status": status,
                "priority": priority,
                "issue": issue,
                "days": days_ago,
            },
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_all())
