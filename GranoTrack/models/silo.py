from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from sqlalchemy import BigInteger, String, Integer, Numeric, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from utils.db import Base, BigIntPK
from utils.datetime_utils import now_guatemala


class Silo(Base):
    __tablename__ = "silo"

    silo_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    numero: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    nombre: Mapped[str | None] = mapped_column(String(80))
    capacidad_ton: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    cliente_id: Mapped[int | None] = mapped_column(BigInteger, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_guatemala, nullable=False)
