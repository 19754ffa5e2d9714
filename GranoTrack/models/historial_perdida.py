from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import BigInteger, String, Numeric, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from utils.db import Base, BigIntPK
from utils.datetime_utils import now_guatemala

METRIC_TYPE = Numeric(18, 6)


class HistorialPerdida(Base):
    """
    Ledger de pérdidas: una fila por (muestreo, silo[, lote]).

    Se reemplaza completo cuando el muestreo se edita; nunca se actualiza fila por fila.
    """
    __tablename__ = "historial_perdida"
    __table_args__ = (
        Index("ix_historial_silo_fecha", "silo", "fecha_semana"),
    )

    historial_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    muestreo_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("muestreo.muestreo_id", ondelete="CASCADE"), nullable=False, index=True)
    lote_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("lote_grano.lote_id", ondelete="SET NULL"), index=True)
    silo: Mapped[str] = mapped_column(String(20), nullable=False)
    fecha_semana: Mapped[date] = mapped_column(Date, nullable=False)
    tipo_grano: Mapped[str | None] = mapped_column(String(80))

    total_gorgojos_vivos: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    total_piojillo: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    total_tons: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)

    acido_urico: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    dano_gorgojos_adultos_kg: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    dano_gorgojos_total_kg: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    dano_piojillo_kg: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    dano_total_plaga_kg: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)
    perdida_economica: Mapped[Decimal] = mapped_column(METRIC_TYPE, default=0, nullable=False)

    # advertencias de calidad de datos del cálculo, separadas por coma
    advertencias: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_guatemala, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=now_guatemala,
        onupdate=now_guatemala,
        nullable=False
    )

    @property
    def lista_advertencias(self) -> list[str]:
        return [a for a in (self.advertencias or "").split(",") if a]
