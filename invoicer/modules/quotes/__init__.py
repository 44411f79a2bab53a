"""
Módulo de Cotizaciones

Ciclo de vida: draft -> sent -> viewed -> accepted / rejected / expired.
Una cotización aceptada puede convertirse en factura una sola vez.
"""
