"""
Módulo de Recibos de pago

Un recibo puede enlazar una factura; cuando los recibos cubren el total
la factura pasa a pagada.
"""
