from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import BigInteger, String, Integer, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utils.db import Base, BigIntPK
from utils.datetime_utils import now_guatemala


class Muestreo(Base):
    """Reporte de muestreo (inspección) de silos."""
    __tablename__ = "muestreo"

    muestreo_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    numero_reporte: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    cliente: Mapped[str] = mapped_column(String(120), nullable=False)
    fecha_reporte: Mapped[date] = mapped_column(Date, nullable=False)
    fecha_servicio: Mapped[date | None] = mapped_column(Date)
    nivel_riesgo: Mapped[str] = mapped_column(String(10), default="bajo", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_guatemala, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=now_guatemala,
        onupdate=now_guatemala,
        nullable=False
    )

    muestras: Mapped[list["Muestra"]] = relationship(
        "Muestra",
        back_populates="muestreo",
        order_by="Muestra.muestra_id",
        cascade="all, delete-orphan",
    )

    @property
    def fecha_semana(self) -> date:
        """Fecha con la que se registra el muestreo en el historial."""
        return self.fecha_servicio or self.fecha_reporte


class Muestra(Base):
    """
    Fila de la tabla del reporte: una muestra (Arriba/Abajo) de un silo.

    Solo conteos crudos; los valores derivados viven en historial_perdida.
    """
    __tablename__ = "muestra"

    muestra_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    muestreo_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("muestreo.muestreo_id", ondelete="CASCADE"), nullable=False, index=True)

    silo: Mapped[str | None] = mapped_column(String(20), index=True)
    muestra: Mapped[str | None] = mapped_column(String(20))  # Arriba / Abajo
    barco: Mapped[str | None] = mapped_column(String(120))
    tipo_grano: Mapped[str | None] = mapped_column(String(80))
    fecha_almacenamiento: Mapped[date | None] = mapped_column(Date)
    dias_almacenamiento: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    piojillo_acaro: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trib_vivos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trib_muertos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rhyz_vivos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rhyz_muertos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    chry_vivos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    chry_muertos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sito_vivos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sito_muertos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    steg_vivos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    steg_muertos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    observaciones: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)  # toneladas

    muestreo: Mapped["Muestreo"] = relationship("Muestreo", back_populates="muestras")
