# ==============================================================================
# INVENTARIO - Gestión de productos, pedidos, deudas y caja para reparto
# ==============================================================================
# Capas:
#   models/        → entidades y enumeraciones
#   repositories/  → documento JSON único (db.json)
#   services/      → reglas de negocio
#   main.py        → rutas Flask
# ==============================================================================

__version__ = '1.0.0'
