# models/__init__.py
from utils.db import Base  # re-export
from .variedad import VariedadGrano
from .silo import Silo
from .lote import LoteGrano, MovimientoLote
from .muestreo import Muestreo, Muestra
from .historial_perdida import HistorialPerdida
from .fumigacion import Fumigacion
