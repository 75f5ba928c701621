from contextlib import contextmanager

from sqlalchemy import event, select

from app.extensions import db


@contextmanager
def transaction():
    """Commit on success, roll back everything on any error."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def use_immediate_transactions(engine):
    """
    On SQLite, take the database write lock as each transaction begins.

    pysqlite defers BEGIN until the first write, so the clash and stock
    reads would otherwise run unlocked and ``FOR UPDATE`` is ignored there.
    Other dialects rely on the row locks below.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def lock_rows(model, ids):
    """
    SELECT ... FOR UPDATE the given rows in ascending id order and return
    them fresh from the database. Dialects without row locks (SQLite) simply
    read the rows.
    """
    ids = sorted(set(ids))
    if not ids:
        return []
    stmt = (
        select(model)
        .where(model.id.in_(ids))
        .order_by(model.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.session.execute(stmt).scalars().all()


def lock_row(model, row_id):
    rows = lock_rows(model, [row_id])
    return rows[0] if rows else None
