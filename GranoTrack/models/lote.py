from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import BigInteger, String, Integer, Numeric, Boolean, Date, DateTime, ForeignKey, CHAR
from sqlalchemy.orm import Mapped, mapped_column, relationship

from enums.enums import UnidadLoteEnum
from utils.db import Base, BigIntPK
from utils.datetime_utils import now_guatemala


class LoteGrano(Base):
    """
    Lote (batch) de grano descargado de un barco.

    Propiedad del subsistema de inventario: aquí solo se lee.
    `silo_id` es la residencia ACTUAL del lote; `is_active=False` cuando se vació.
    """
    __tablename__ = "lote_grano"

    lote_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    origen: Mapped[str | None] = mapped_column(String(120))  # nombre del barco
    tipo_grano: Mapped[str] = mapped_column(String(80), nullable=False)
    subtipo_grano: Mapped[str | None] = mapped_column(String(80))
    cantidad: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    unidad: Mapped[str] = mapped_column(CHAR(2), default="t", nullable=False)  # kg / t
    fecha_entrada: Mapped[date | None] = mapped_column(Date)
    silo_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("silo.silo_id", ondelete="SET NULL"), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notas: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_guatemala, nullable=False)

    silo: Mapped["Silo | None"] = relationship("Silo", foreign_keys=[silo_id])
    movimientos: Mapped[list["MovimientoLote"]] = relationship(
        "MovimientoLote",
        back_populates="lote",
        order_by="MovimientoLote.fecha",
        cascade="all, delete-orphan",
    )

    @property
    def cantidad_toneladas(self) -> Decimal:
        cantidad = Decimal(str(self.cantidad or 0))
        if self.unidad == UnidadLoteEnum.kg.value:
            return cantidad / Decimal("1000")
        return cantidad


class MovimientoLote(Base):
    """Traspaso de un lote entre silos (números de silo, no ids)."""
    __tablename__ = "movimiento_lote"

    movimiento_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    lote_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("lote_grano.lote_id", ondelete="CASCADE"), nullable=False, index=True)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)
    silo_origen: Mapped[int] = mapped_column(Integer, nullable=False)
    silo_destino: Mapped[int] = mapped_column(Integer, nullable=False)
    cantidad: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    notas: Mapped[str | None] = mapped_column(String(255))

    lote: Mapped["LoteGrano"] = relationship("LoteGrano", back_populates="movimientos")
