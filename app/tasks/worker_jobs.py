import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from app.core.errors import DuplicatePaymentError, StoreError
from app.db.session import SessionLocal
from app.services.booking_service import CURRENCY, make_transaction_ref
from app.store.sql_store import SqlAlchemyDataStore

logger = logging.getLogger(__name__)

def _missing_tables(e: StoreError) -> bool:
    return isinstance(e.__cause__, ProgrammingError)

def reconcile_seat_counts(db: Session | None = None):
    db = db or SessionLocal()
    try:
        store = SqlAlchemyDataStore(db)
        try:
            with store.atomic():
                store.recompute_available_seats()
        except StoreError as e:
            if _missing_tables(e):
                # DB not migrated yet; don't crash the worker.
                return {"skipped": True, "reason": "missing_tables"}
            raise
        return {"recomputed": True}
    finally:
        db.close()

def reconcile_paid_tickets(db: Session | None = None):
    """Record the missing completed transaction for every paid cash ticket that lacks one."""
    db = db or SessionLocal()
    try:
        store = SqlAlchemyDataStore(db)
        try:
            tickets = store.find_paid_cash_tickets_without_transaction()
        except StoreError as e:
            if _missing_tables(e):
                return {"skipped": True, "reason": "missing_tables"}
            raise
        fixed = 0
        for candidate in tickets:
            try:
                with store.atomic():
                    # Same row lock as update_ticket_status; recheck under it
                    t = store.get_ticket(candidate.id, for_update=True)
                    if t is None or t.payment_status != "paid" or t.payment_method != "cash":
                        continue
                    if store.find_payment_transaction_by_ticket(t.id) is not None:
                        continue
                    store.insert_payment_transaction({
                        "ticket_id": t.id,
                        "amount_usd": t.price_paid_usd,
                        "currency": CURRENCY,
                        "payment_method": "cash",
                        "status": "completed",
                        "transaction_id": t.payment_reference or make_transaction_ref(),
                    })
            except DuplicatePaymentError:
                logger.info("ticket %s got its payment transaction concurrently", candidate.id)
                continue
            fixed += 1
            logger.warning("reconciled missing payment transaction for ticket %s", t.id)
        return {"fixed": fixed}
    finally:
        db.close()
