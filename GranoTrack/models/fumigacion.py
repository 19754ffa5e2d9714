from __future__ import annotations

from datetime import date, datetime
from sqlalchemy import BigInteger, String, Date, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from utils.db import Base, BigIntPK
from utils.datetime_utils import now_guatemala


class Fumigacion(Base):
    """Servicio de fumigación aplicado a un silo (registrado por el módulo de servicios)."""
    __tablename__ = "fumigacion"

    fumigacion_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    silo: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # AP-01
    servicio_id: Mapped[int | None] = mapped_column(BigInteger, index=True)
    tipo_grano: Mapped[str | None] = mapped_column(String(80))
    lote_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("lote_grano.lote_id", ondelete="SET NULL"))
    fecha_fumigacion: Mapped[date] = mapped_column(Date, nullable=False)
    producto_utilizado: Mapped[str | None] = mapped_column(String(120))
    dosis: Mapped[str | None] = mapped_column(String(60))
    tecnico: Mapped[str | None] = mapped_column(String(120))
    notas: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_guatemala, nullable=False)
