"""
Back-office de administración

Login propio (usuario + contraseña con salt) y token firmado de tipo
"admin" validado en cada request.
"""
