"""
Hash de contraseñas de administradores: sha256(password + salt) en hex.

SHA-256 es rápido; un KDF con costo de memoria (argon2, scrypt) sería más
robusto ante fuerza bruta offline.
"""
import hashlib
import hmac
import secrets

SALT_BYTES = 16


def generate_salt() -> str:
    return secrets.token_hex(SALT_BYTES)


def hash_admin_password(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


def hashes_match(candidate: str, stored: str) -> bool:
    """Comparación en tiempo constante"""
    return hmac.compare_digest(candidate.encode("ascii"), (stored or "").encode("ascii"))


# Se usan cuando el usuario no existe o está inactivo para que la
# verificación cueste lo mismo en todos los casos
DUMMY_SALT = generate_salt()
DUMMY_HASH = hash_admin_password(secrets.token_hex(SALT_BYTES), DUMMY_SALT)
