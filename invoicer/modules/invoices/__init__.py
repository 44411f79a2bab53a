"""
Módulo de Facturas

- Creación y edición de facturas en borrador con numeración por usuario
- Ciclo de vida: draft -> sent -> viewed -> paid / overdue / cancelled
- PDF y envío por email
"""
