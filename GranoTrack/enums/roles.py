from enum import Enum

class Role(str, Enum):
    admin = "admin"        # Personal de la empresa: ve todos los silos
    cliente = "cliente"    # Cliente: solo ve los silos asignados a su cliente_id
