from __future__ import annotations

from decimal import Decimal
from sqlalchemy import String, Numeric, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from utils.db import Base, BigIntPK


class VariedadGrano(Base):
    """Catálogo de variedades de grano con su costo por kg (Q.)."""
    __tablename__ = "variedad_grano"

    variedad_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    tipo_grano: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    variedad: Mapped[str] = mapped_column(String(80), nullable=False)
    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    costo_por_kg: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
