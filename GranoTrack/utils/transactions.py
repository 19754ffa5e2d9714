# utils/transactions.py
from contextlib import contextmanager
from sqlalchemy.orm import Session
from utils.db import SessionLocal

@contextmanager
def uow(session: Session | None = None):
    """
    Unidad de trabajo: todo lo que pase dentro se confirma o se revierte junto.

    Uso:
        with uow(db):
            ... # muestreo + historial de pérdidas
        # commit al salir, rollback y re-raise si algo falla

    Con la sesión de get_db() no se abre otra ni se cierra al terminar.
    """
    owns_session = session is None
    db = session or SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()
