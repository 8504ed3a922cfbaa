"""
Relational persistence for providers, base plans, plans and zones.

Every write is an idempotent upsert keyed by the provider's own identifiers,
so replaying the same feed leaves the tables unchanged apart from
`updated_at`. A base plan and all of its plans and zones are written in one
transaction.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from plansearch.domain.models import BasePlanRecord, PersistedPlan, PlanRecord, Provider
from plansearch.errors import PersistError
from plansearch.infrastructure.db_factory import get_sync_pool
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "db" / "init.sql"

_UPSERT_BASE_PLAN = """
    INSERT INTO public.base_plans (providers_id, event_base_id, title, sell_mode, organizer_company_id)
    VALUES (%s, %s, %s, %s, %s)
    ON CONFLICT (providers_id, event_base_id) DO UPDATE
    SET title = EXCLUDED.title,
        sell_mode = EXCLUDED.sell_mode,
        organizer_company_id = EXCLUDED.organizer_company_id,
        updated_at = now()
    RETURNING base_plans_id;
"""

_UPSERT_PLAN = """
    INSERT INTO public.plans
        (base_plans_id, event_plan_id, plan_start_date, plan_end_date, sell_from, sell_to, sold_out)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (base_plans_id, event_plan_id) DO UPDATE
    SET plan_start_date = EXCLUDED.plan_start_date,
        plan_end_date = EXCLUDED.plan_end_date,
        sell_from = EXCLUDED.sell_from,
        sell_to = EXCLUDED.sell_to,
        sold_out = EXCLUDED.sold_out,
        updated_at = now()
    RETURNING plans_id;
"""

_DELETE_ZONES = "DELETE FROM public.zones WHERE plans_id = %s;"

_INSERT_ZONE = """
    INSERT INTO public.zones (plans_id, event_zone_id, name, numbered, capacity, price)
    VALUES (%s, %s, %s, %s, %s, %s);
"""

_ACTIVE_PROVIDERS = """
    SELECT providers_id AS provider_id, name, url, is_active
    FROM public.providers
    WHERE is_active
    ORDER BY name;
"""

_UPSERT_PROVIDER = """
    INSERT INTO public.providers (name, description, url)
    VALUES (%s, %s, %s)
    ON CONFLICT (url) DO UPDATE
    SET name = EXCLUDED.name,
        description = EXCLUDED.description,
        is_active = TRUE,
        updated_at = now()
    RETURNING providers_id AS provider_id, name, url, is_active;
"""


def apply_schema(conn: psycopg.Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """Create the tables if they do not exist."""
    with conn.cursor() as cur:
        cur.execute(schema_path.read_text(encoding="utf-8"))
    conn.commit()


class PlanRepository:
    """
    psycopg-backed store for provider feeds.

    Parameters
    ----------
    pool : ConnectionPool
        Shared pool; each call borrows one connection.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def active_providers(self) -> List[Provider]:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(_ACTIVE_PROVIDERS)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise PersistError(f"Cannot load active providers: {exc}") from exc
        return [Provider(**row) for row in rows]

    def register_provider(self, name: str, url: str, description: str = "") -> Provider:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(_UPSERT_PROVIDER, (name, description, url))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise PersistError(f"Cannot register provider {name!r}: {exc}") from exc
        return Provider(**row)

    def persist(self, provider_id: UUID, base_plan: BasePlanRecord) -> List[PersistedPlan]:
        """
        Upsert a base plan with its plans and zones in one transaction.

        Returns one PersistedPlan per plan, carrying the provider's ids.

        Raises
        ------
        PersistError
            If any statement fails; nothing from this base plan is committed.
        """
        sell_mode = base_plan.sell_mode.value if base_plan.sell_mode else ""
        try:
            with self._pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.execute(
                            _UPSERT_BASE_PLAN,
                            (
                                provider_id,
                                base_plan.base_plan_id,
                                base_plan.title,
                                sell_mode,
                                base_plan.organizer_company_id,
                            ),
                        )
                        (base_plans_id,) = cur.fetchone()
                        for plan in base_plan.plans:
                            self._persist_plan(cur, base_plans_id, plan)
        except psycopg.Error as exc:
            log.error(
                "Base plan persistence failed",
                extra={"base_plan_id": base_plan.base_plan_id, "error": str(exc)},
            )
            raise PersistError(str(exc), base_plan_id=base_plan.base_plan_id) from exc

        log.debug(
            "Base plan persisted",
            extra={"base_plan_id": base_plan.base_plan_id, "plans": len(base_plan.plans)},
        )
        return [
            PersistedPlan(
                provider_id=str(provider_id),
                base_plan_id=base_plan.base_plan_id,
                title=base_plan.title,
                sell_mode=base_plan.sell_mode,
                organizer_company_id=base_plan.organizer_company_id,
                plan=plan,
            )
            for plan in base_plan.plans
        ]

    @staticmethod
    def _persist_plan(cur: psycopg.Cursor, base_plans_id: UUID, plan: PlanRecord) -> None:
        cur.execute(
            _UPSERT_PLAN,
            (
                base_plans_id,
                plan.plan_id,
                plan.plan_start_date,
                plan.plan_end_date,
                plan.sell_from,
                plan.sell_to,
                plan.sold_out,
            ),
        )
        (plans_id,) = cur.fetchone()
        # Zones have no reliable natural key in feeds; replace them wholesale.
        cur.execute(_DELETE_ZONES, (plans_id,))
        if plan.zones:
            cur.executemany(
                _INSERT_ZONE,
                [
                    (plans_id, z.zone_id, z.name, z.numbered, z.capacity, z.price)
                    for z in plan.zones
                ],
            )


def connect_repository(pool: Optional[ConnectionPool] = None) -> PlanRepository:
    """Repository over the managed pool."""
    return PlanRepository(pool or get_sync_pool())


__all__ = ["PlanRepository", "apply_schema", "connect_repository", "SCHEMA_PATH"]
