from enum import Enum

# =====================================================
# 🧪 MUESTREOS
# =====================================================
class NivelRiesgoReporteEnum(str, Enum):
    bajo = "bajo"
    medio = "medio"
    alto = "alto"
    critico = "critico"


# =====================================================
# 🌾 LOTES
# =====================================================
class UnidadLoteEnum(str, Enum):
    kg = "kg"
    t = "t"  # toneladas métricas


# =====================================================
# ⚠️ CLASIFICACIÓN DE RIESGO
# =====================================================
class TipoMetricaEnum(str, Enum):
    acido_urico = "acido_urico"
    perdida_economica = "perdida_economica"


class NivelAcidoUricoEnum(str, Enum):
    tolerable = "tolerable"                              # <= 5 mg/100g
    moderadamente_peligroso = "moderadamente_peligroso"  # (5, 10]
    critico = "critico"                                  # > 10


class NivelPerdidaEnum(str, Enum):
    bajo = "bajo"          # <= Q.5,000
    moderado = "moderado"  # (5,000, 25,000]
    alto = "alto"          # (25,000, 50,000]
    critico = "critico"    # > 50,000


# =====================================================
# 📊 ACUMULADOS
# =====================================================
class AlcanceAcumuladoEnum(str, Enum):
    lote = "lote"                # desde la entrada del lote
    silo = "silo"                # lotes residentes actualmente en el silo
    periodo = "periodo"          # por fecha de reporte, sin filtro de residencia
    tipo_grano = "tipo_grano"
    global_ = "global"


# =====================================================
# ⚠️ ADVERTENCIAS DE CALIDAD DE DATOS
# =====================================================
class AdvertenciaEnum(str, Enum):
    silo_faltante = "silo_faltante"
    tipo_grano_faltante = "tipo_grano_faltante"
    tipo_grano_inconsistente = "tipo_grano_inconsistente"
    costo_no_resuelto = "costo_no_resuelto"
    lote_no_resuelto = "lote_no_resuelto"
    tonelaje_desde_lote = "tonelaje_desde_lote"
    fecha_entrada_faltante = "fecha_entrada_faltante"
