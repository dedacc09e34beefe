"""Create the default admin account if it does not exist yet.

Credentials can be overridden with ADMIN_EMAIL, ADMIN_PASSWORD and ADMIN_NAME.
"""
import logging
import os, sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from werkzeug.security import generate_password_hash

from app import create_app
from database import Role, User, db

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@bloodbank.com')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin123')
ADMIN_NAME = os.environ.get('ADMIN_NAME', 'Admin User')


def seed_admin(email=ADMIN_EMAIL, password=ADMIN_PASSWORD, name=ADMIN_NAME):
    """Return the admin user, creating it on first run."""
    admin = User.query.filter_by(email=email).first()
    if admin:
        logger.info(f"Admin user already exists: {email}")
        return admin, False

    admin = User(
        name=name,
        email=email,
        password=generate_password_hash(password),
        role=Role.ADMIN,
    )
    db.session.add(admin)
    db.session.commit()
    logger.info(f"Default admin user created: {email}")
    return admin, True


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        _, created = seed_admin()
    print("Admin user created" if created else "Admin user already exists")
    print(f"Email: {ADMIN_EMAIL}")
