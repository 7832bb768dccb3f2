"""
Taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Órdenes de trabajo de vehículos, remisiones y liquidación de
comisiones de técnicos.
"""

__version__ = "1.0.0"
