"""
Módulo de Dashboard: métricas de facturación del usuario.
"""
