"""
SaleRecordStore -- exactly-once persistence of commission sales.

Responsibility:
    Persists one CommissionSale per checkout attempt and moves it through
    its lifecycle (pending -> completed | failed), backfilling the payment
    intent id once the processor confirms payment.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.

Invariants enforced:
    - At most one row per checkout attempt.  ``record_sale`` issues a single
      ``INSERT ... ON CONFLICT DO NOTHING`` against uq_sale_session and
      uq_sale_payment_intent; an existing row yields DUPLICATE.  There is no
      read-before-insert, so concurrent identical requests cannot both
      insert.
    - Backfilling ``payment_intent_id`` runs inside a SAVEPOINT.  A
      uniqueness violation there means another row already carries the
      intent for the same attempt; the two rows are collapsed into one.
    - The split stored at insert time is never recalculated.

Failure modes:
    - SaleNotFoundError: confirm/fail for an unknown session.
    - UpstreamError: datastore failure other than a uniqueness conflict.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.commission import CommissionSplit
from commission_kernel.domain.dtos import (
    CommissionSaleInfo,
    RecordResult,
    RecordStatus,
    SessionHandle,
    TenantAccountInfo,
)
from commission_kernel.exceptions import SaleNotFoundError, UpstreamError
from commission_kernel.logging_config import get_logger
from commission_kernel.models.commission_sale import CommissionSale, SaleStatus
from commission_kernel.models.tenant_account import TenantAccount
from commission_kernel.services.base import BaseService

logger = get_logger("services.sale_store")

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SaleRecordStore(BaseService[CommissionSale]):
    """Idempotent store of commission sales."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_sale(
        self,
        handle: SessionHandle,
        tenant_account: TenantAccount | TenantAccountInfo,
        split: CommissionSplit | None = None,
    ) -> RecordResult:
        """
        Persist the sale for ``handle`` unless this attempt is already stored.

        Returns:
            RecordResult with status RECORDED (new pending row) or DUPLICATE
            (the existing row; no error, no second row).
        """
        split = split or handle.split
        sale_id = uuid4()
        insert = self._insert_for_dialect()
        stmt = (
            insert(CommissionSale)
            .values(
                id=sale_id,
                tenant_account_id=tenant_account.id,
                session_id=handle.session_id,
                payment_intent_id=handle.payment_intent_id,
                amount_total=split.amount_total,
                commission_amount=split.commission_amount,
                net_amount=split.net_amount,
                currency=handle.currency.upper(),
                description=handle.description,
                customer_email=handle.customer_email,
                status=SaleStatus.PENDING.value,
                created_by=tenant_account.user_id,
            )
            .on_conflict_do_nothing()
            .returning(CommissionSale.id)
        )
        try:
            inserted_id = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(
                "sale_insert_failed",
                extra={"checkout_session": handle.session_id},
                exc_info=True,
            )
            raise UpstreamError("record_sale", str(exc)) from exc

        if inserted_id is not None:
            sale = self.session.get(CommissionSale, inserted_id)
            logger.info(
                "sale_recorded",
                extra={
                    "sale": str(inserted_id),
                    "checkout_session": handle.session_id,
                    "amount_total": split.amount_total,
                    "commission_amount": split.commission_amount,
                },
            )
            return RecordResult(RecordStatus.RECORDED, CommissionSaleInfo.from_model(sale))

        existing = self._find_for_attempt(handle.session_id, handle.payment_intent_id)
        if (
            handle.payment_intent_id is not None
            and existing.payment_intent_id is None
        ):
            existing = self._backfill_intent(existing, handle.payment_intent_id)
        if existing.amount_total != split.amount_total:
            logger.warning(
                "duplicate_sale_amount_mismatch",
                extra={
                    "checkout_session": handle.session_id,
                    "stored_amount": existing.amount_total,
                    "requested_amount": split.amount_total,
                },
            )
        logger.info(
            "sale_duplicate",
            extra={"sale": str(existing.id), "checkout_session": handle.session_id},
        )
        return RecordResult(RecordStatus.DUPLICATE, CommissionSaleInfo.from_model(existing))

    def _insert_for_dialect(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise RuntimeError(
                f"Conditional insert not supported for dialect '{dialect}'"
            ) from None

    def _find_for_attempt(
        self,
        session_id: str,
        payment_intent_id: str | None,
    ) -> CommissionSale:
        """Row that blocked the insert: by session first, then by intent."""
        clauses = [CommissionSale.session_id == session_id]
        if payment_intent_id is not None:
            clauses.append(CommissionSale.payment_intent_id == payment_intent_id)
        rows = self.session.execute(
            select(CommissionSale)
            .where(or_(*clauses))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        if not rows:
            raise SaleNotFoundError(session_id)
        for row in rows:
            if row.session_id == session_id:
                return row
        return rows[0]

    # ------------------------------------------------------------------
    # Payment intent backfill / collapse
    # ------------------------------------------------------------------

    def _backfill_intent(self, sale: CommissionSale, payment_intent_id: str) -> CommissionSale:
        """
        Set ``payment_intent_id`` on ``sale``.

        If another row already holds the intent (created separately for the
        same attempt before the intent was known), collapse the pair and
        return the surviving row.
        """
        savepoint = self.session.begin_nested()
        try:
            sale.payment_intent_id = payment_intent_id
            self.session.flush()
            savepoint.commit()
            logger.info(
                "payment_intent_backfilled",
                extra={"sale": str(sale.id), "payment_intent": payment_intent_id},
            )
            return sale
        except IntegrityError:
            savepoint.rollback()

        other = self.session.execute(
            select(CommissionSale)
            .where(CommissionSale.payment_intent_id == payment_intent_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()
        return self._collapse(sale, other, payment_intent_id)

    def _collapse(
        self,
        session_row: CommissionSale,
        intent_row: CommissionSale,
        payment_intent_id: str,
    ) -> CommissionSale:
        """
        Merge two rows recorded for one checkout attempt into one.

        The session row survives unless the intent row has already been
        settled by a transfer.  The survivor keeps the most advanced status.
        """
        if intent_row.transfer_id is None:
            survivor, dropped = session_row, intent_row
        else:
            survivor, dropped = intent_row, session_row

        completed = SaleStatus.COMPLETED in (
            SaleStatus(survivor.status),
            SaleStatus(dropped.status),
        )
        completed_at = survivor.completed_at or dropped.completed_at
        dropped_id = dropped.id

        self.session.delete(dropped)
        self.session.flush()

        survivor.payment_intent_id = payment_intent_id
        if completed:
            survivor.status = SaleStatus.COMPLETED
            survivor.completed_at = completed_at or self._clock.now()
        self.session.flush()

        logger.warning(
            "duplicate_sales_collapsed",
            extra={
                "surviving_sale": str(survivor.id),
                "dropped_sale": str(dropped_id),
                "payment_intent": payment_intent_id,
            },
        )
        return survivor

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _get_by_session(self, session_id: str) -> CommissionSale:
        sale = self.session.execute(
            select(CommissionSale)
            .where(CommissionSale.session_id == session_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if sale is None:
            raise SaleNotFoundError(session_id)
        return sale

    def confirm_sale(
        self,
        session_id: str,
        payment_intent_id: str | None = None,
    ) -> CommissionSaleInfo:
        """
        Mark the sale for ``session_id`` completed once the processor
        confirmed payment, backfilling ``payment_intent_id`` if it was NULL.

        Idempotent: confirming an already-completed sale changes nothing.

        Raises:
            SaleNotFoundError: If no sale exists for ``session_id``.
        """
        sale = self._get_by_session(session_id)

        if payment_intent_id is not None:
            if sale.payment_intent_id is None:
                sale = self._backfill_intent(sale, payment_intent_id)
            elif sale.payment_intent_id != payment_intent_id:
                logger.warning(
                    "payment_intent_mismatch",
                    extra={
                        "sale": str(sale.id),
                        "stored_intent": sale.payment_intent_id,
                        "confirmed_intent": payment_intent_id,
                    },
                )

        if sale.status != SaleStatus.COMPLETED:
            sale.status = SaleStatus.COMPLETED
            sale.completed_at = self._clock.now()
            self.session.flush()
            logger.info(
                "sale_completed",
                extra={"sale": str(sale.id), "checkout_session": session_id},
            )
        return CommissionSaleInfo.from_model(sale)

    def fail_sale(self, session_id: str) -> CommissionSaleInfo:
        """
        Mark a pending sale failed (payment abandoned or declined).

        Completed sales are left untouched.

        Raises:
            SaleNotFoundError: If no sale exists for ``session_id``.
        """
        sale = self._get_by_session(session_id)
        if sale.status == SaleStatus.PENDING:
            sale.status = SaleStatus.FAILED
            self.session.flush()
            logger.info("sale_failed", extra={"sale": str(sale.id)})
        else:
            logger.warning(
                "sale_fail_ignored",
                extra={"sale": str(sale.id), "status": sale.status},
            )
        return CommissionSaleInfo.from_model(sale)

    def get_sale(self, session_id: str) -> CommissionSaleInfo:
        """
        Get the sale recorded for ``session_id``.

        Raises:
            SaleNotFoundError: If none exists.
        """
        sale = self.session.execute(
            select(CommissionSale).where(CommissionSale.session_id == session_id)
        ).scalar_one_or_none()
        if sale is None:
            raise SaleNotFoundError(session_id)
        return CommissionSaleInfo.from_model(sale)

    def get_sale_by_id(self, sale_id: UUID) -> CommissionSaleInfo:
        sale = self.session.get(CommissionSale, sale_id)
        if sale is None:
            raise SaleNotFoundError(str(sale_id))
        return CommissionSaleInfo.from_model(sale)
