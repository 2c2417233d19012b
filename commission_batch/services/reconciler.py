"""
ManualSettlementReconciler -- pays out sales collected on the platform balance.

Contract:
    Tenants without split capability are charged through plain checkout
    sessions, so their money lands in the platform balance.  Each run finds
    the completed, untransferred sales of those tenants and transfers every
    sale's net amount to the tenant's real processor account.

Architecture: commission_batch/services.  Imports from commission_batch.domain
    and kernel selectors/models; owns its transactions through a session
    factory (one commit per settled sale).

Invariants enforced:
    - A sale is transferred at most once.  Only rows with transfer_id NULL
      are selected, the transfer request carries an idempotency key derived
      from the sale id, and the Transfer row is unique per sale.
    - A failed transfer leaves the sale untouched; the run continues and the
      next run retries it.
    - Virtual tenants have no account to transfer to; their sales are
      reported as skipped and stay pending.
    - Transfers run sequentially with a pacing delay between processor calls.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from commission_kernel.db.engine import session_scope
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.gateways import PaymentGateway, TransferRequest
from commission_kernel.domain.policy import PlatformPolicy
from commission_kernel.exceptions import CommissionKernelError
from commission_kernel.logging_config import LogContext, get_logger
from commission_kernel.models.commission_sale import CommissionSale, Transfer
from commission_kernel.models.tenant_account import AccountKind
from commission_kernel.selectors.sale_selector import PendingSettlement, SaleSelector
from commission_kernel.utils.idempotency import generate_idempotency_key

from commission_batch.domain.types import (
    SettlementItem,
    SettlementItemStatus,
    SettlementReport,
)

logger = get_logger("batch.reconciler")

NOT_YET_TRANSFERABLE = "not yet transferable"


class ManualSettlementReconciler:
    """Sequential settlement run over pending non-split sales.

    Contract:
        - ``run()`` transfers every transferable pending sale and returns a
          ``SettlementReport``.
        - ``preview()`` lists what ``run()`` would do without calling the
          processor or writing anything.

    Non-goals:
        - Does NOT schedule itself; a cron job or operator invokes it.
        - Does NOT retry within a run; failures wait for the next run.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        gateway: PaymentGateway,
        policy: PlatformPolicy,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._policy = policy
        self._clock = clock or SystemClock()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def pending(self, limit: int | None = None) -> list[PendingSettlement]:
        with session_scope(self._session_factory) as session:
            return SaleSelector(session).pending_settlement(limit=limit)

    def _work_list(
        self, limit: int | None
    ) -> tuple[list[PendingSettlement], list[PendingSettlement]]:
        """Transferable sales (at most ``limit``) and sales of virtual tenants.

        ``limit`` bounds transfer attempts only, so virtual tenants at the
        head of the queue never starve the real ones behind them.
        """
        with session_scope(self._session_factory) as session:
            selector = SaleSelector(session)
            transferable = selector.pending_settlement(limit=limit, account_kind=AccountKind.REAL)
            waiting = selector.pending_settlement(account_kind=AccountKind.VIRTUAL)
        return transferable, waiting

    def preview(self, limit: int | None = None) -> SettlementReport:
        """Dry run: classify pending sales, no processor calls, no writes."""
        run_id = uuid4()
        started_at = self._clock.now()
        transferable, waiting = self._work_list(limit)
        return SettlementReport(
            run_id=run_id,
            started_at=started_at,
            completed_at=self._clock.now(),
            transfers=tuple(
                self._item(entry, SettlementItemStatus.TRANSFERRED, reason="dry run")
                for entry in transferable
            ),
            skipped=tuple(
                self._item(entry, SettlementItemStatus.SKIPPED, reason=NOT_YET_TRANSFERABLE)
                for entry in waiting
            ),
            dry_run=True,
        )

    def run(self, limit: int | None = None) -> SettlementReport:
        """Settle all pending sales.

        Returns:
            SettlementReport with transfers, failures and skipped items.
            A run with nothing pending returns an empty report.
        """
        run_id = uuid4()
        started_at = self._clock.now()
        transfers: list[SettlementItem] = []
        failures: list[SettlementItem] = []
        skipped: list[SettlementItem] = []

        with LogContext.bind(run_id=str(run_id)):
            transferable, waiting = self._work_list(limit)
            logger.info(
                "settlement_run_started",
                extra={"pending_count": len(transferable), "waiting_count": len(waiting)},
            )

            for entry in waiting:
                logger.info(
                    "settlement_skipped",
                    extra={"sale": str(entry.sale_id), "account_ref": entry.account_ref},
                )
                skipped.append(
                    self._item(entry, SettlementItemStatus.SKIPPED, reason=NOT_YET_TRANSFERABLE)
                )

            for position, entry in enumerate(transferable):
                if position and self._policy.transfer_pacing_seconds > 0:
                    self._sleep(self._policy.transfer_pacing_seconds)

                with LogContext.bind(sale_id=str(entry.sale_id), tenant_ref=entry.account_ref):
                    item = self._settle(entry)
                if item.status == SettlementItemStatus.TRANSFERRED:
                    transfers.append(item)
                elif item.status == SettlementItemStatus.SKIPPED:
                    skipped.append(item)
                else:
                    failures.append(item)

            report = SettlementReport(
                run_id=run_id,
                started_at=started_at,
                completed_at=self._clock.now(),
                transfers=tuple(transfers),
                failures=tuple(failures),
                skipped=tuple(skipped),
            )
            logger.info(
                "settlement_run_completed",
                extra={
                    "transfer_count": report.transfer_count,
                    "total_amount": report.total_amount,
                    "failure_count": len(report.failures),
                    "skipped_count": len(report.skipped),
                },
            )
        return report

    # ------------------------------------------------------------------
    # Per-sale settlement
    # ------------------------------------------------------------------

    def _settle(self, entry: PendingSettlement) -> SettlementItem:
        request = TransferRequest(
            amount=entry.net_amount,
            currency=entry.currency.lower(),
            destination=entry.account_ref,
            idempotency_key=generate_idempotency_key("settlement", "transfer", entry.sale_id),
            metadata={
                "commission_sale_id": str(entry.sale_id),
                "business_name": entry.business_name,
                "original_payment_intent": entry.payment_intent_id or "",
                "manual_transfer": "true",
            },
        )
        try:
            transfer_ref = self._gateway.create_transfer(request)
        except Exception as exc:
            logger.error(
                "settlement_transfer_failed",
                extra={"amount": entry.net_amount, "error": str(exc)},
                exc_info=True,
            )
            return self._item(
                entry,
                SettlementItemStatus.FAILED,
                reason=str(exc),
                error_code=getattr(exc, "code", "UPSTREAM_ERROR"),
            )

        try:
            recorded = self._record_transfer(entry.sale_id, transfer_ref, request)
        except (SQLAlchemyError, CommissionKernelError) as exc:
            # Money moved but the sale is not marked; the idempotency key
            # makes the next run's retry return this same transfer.
            logger.critical(
                "settlement_record_failed",
                extra={"transfer_ref": transfer_ref, "error": str(exc)},
                exc_info=True,
            )
            return self._item(
                entry,
                SettlementItemStatus.FAILED,
                transfer_ref=transfer_ref,
                reason=f"transfer not recorded: {exc}",
                error_code="TRANSFER_NOT_RECORDED",
            )

        if not recorded:
            return self._item(
                entry,
                SettlementItemStatus.SKIPPED,
                transfer_ref=transfer_ref,
                reason="already settled",
            )

        logger.info(
            "settlement_transfer_created",
            extra={"transfer_ref": transfer_ref, "amount": entry.net_amount},
        )
        return self._item(entry, SettlementItemStatus.TRANSFERRED, transfer_ref=transfer_ref)

    def _record_transfer(
        self,
        sale_id: UUID,
        transfer_ref: str,
        request: TransferRequest,
    ) -> bool:
        """Persist the Transfer and mark the sale, in its own transaction.

        Returns False when a concurrent run already settled the sale.
        """
        with session_scope(self._session_factory) as session:
            sale = session.execute(
                select(CommissionSale)
                .where(CommissionSale.id == sale_id)
                .with_for_update()
            ).scalar_one()
            if sale.transfer_id is not None:
                logger.warning(
                    "settlement_already_recorded",
                    extra={"existing_transfer": sale.transfer_id, "transfer_ref": transfer_ref},
                )
                return False
            session.add(
                Transfer(
                    transfer_ref=transfer_ref,
                    sale_id=sale_id,
                    destination=request.destination,
                    amount=request.amount,
                    currency=request.currency.upper(),
                    created_by="settlement",
                )
            )
            sale.transfer_id = transfer_ref
            session.flush()
        return True

    @staticmethod
    def _item(
        entry: PendingSettlement,
        status: SettlementItemStatus,
        transfer_ref: str | None = None,
        reason: str | None = None,
        error_code: str | None = None,
    ) -> SettlementItem:
        return SettlementItem(
            sale_id=entry.sale_id,
            session_id=entry.session_id,
            account_ref=entry.account_ref,
            business_name=entry.business_name,
            amount=entry.net_amount,
            currency=entry.currency,
            status=status,
            transfer_ref=transfer_ref,
            reason=reason,
            error_code=error_code,
        )
