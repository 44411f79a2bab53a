"""
Bootstrap script: create (or reset) a back-office administrator.

Administrators are never created through the public API; the first
superadmin is created with this script and manages the rest from /admin.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/create_admin_user.py \
        --username root \
        --email root@invoicer.io \
        --password 'Change.Me!2025' \
        --role superadmin

Use --reset-password to set a new password for an existing username.
"""

# Add project root to sys.path so `invoicer.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import logging

from pydantic import EmailStr, TypeAdapter, ValidationError

from invoicer.database.database import Base, SessionLocal, sync_engine
from invoicer.modules.admin.models import AdminUser
from invoicer.modules.admin.security import generate_salt, hash_admin_password

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("create_admin_user")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create an Invoicer back-office administrator")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--role", choices=["admin", "superadmin"], default="superadmin")
    parser.add_argument("--reset-password", action="store_true", help="Update the password if the admin exists")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first (development)")
    return parser.parse_args(argv)


def create_admin(db, username: str, email: str, password: str, role: str, reset_password: bool = False) -> AdminUser:
    if len(password) < 8:
        raise SystemExit("Password must be at least 8 characters long")
    try:
        email = TypeAdapter(EmailStr).validate_python(email)
    except ValidationError:
        raise SystemExit(f"Invalid email address: {email}")

    admin = db.query(AdminUser).filter(AdminUser.username == username).first()
    salt = generate_salt()

    if admin:
        if not reset_password:
            raise SystemExit(f"Admin '{username}' already exists (use --reset-password)")
        admin.salt = salt
        admin.password_hash = hash_admin_password(password, salt)
        admin.is_active = True
        logger.info(f"Password reset for admin '{username}'")
    else:
        admin = AdminUser(
            username=username,
            email=email.lower(),
            password_hash=hash_admin_password(password, salt),
            salt=salt,
            role=role,
            is_active=True
        )
        db.add(admin)
        logger.info(f"Admin '{username}' created with role {role}")

    db.commit()
    db.refresh(admin)
    return admin


def main(argv=None):
    args = parse_args(argv)
    if args.create_tables:
        import invoicer.main  # noqa: F401  registers every model
        Base.metadata.create_all(bind=sync_engine)

    db = SessionLocal()
    try:
        create_admin(db, args.username, args.email, args.password, args.role, args.reset_password)
    finally:
        db.close()


if __name__ == "__main__":
    main()
