# Overview: Transaction and locking helpers shared by the service layer.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InvalidTransitionError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a block as one database transaction.

    Commits on success. On any exception the whole unit is rolled back and
    the exception propagates; optimistic-lock failures surface as
    ConflictError. No retries: a conflicting writer gets a 409 and decides.
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Record was modified concurrently; reload and try again") from exc
    except Exception:
        db.session.rollback()
        raise


def guarded_transition(
    model,
    entity_id: int,
    *,
    expected_statuses: set[str],
    values: dict,
    label: str = "record",
):
    """
    Conditional status update: UPDATE ... WHERE id = ? AND status IN (expected).

    Exactly one row must change, otherwise the entity moved under us (or was
    never in an allowed state) and InvalidTransitionError is raised. The
    refreshed row is returned.
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, model.status.in_(sorted(expected_statuses)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        current = db.session.get(model, entity_id, populate_existing=True)
        current_status = current.status if current else None
        raise InvalidTransitionError(
            f"Cannot move {label} {entity_id} "
            f"to {values.get('status')} from {current_status}",
            current_status=current_status,
            target_status=values.get("status"),
        )

    return db.session.get(model, entity_id, populate_existing=True)
