import os, sys

# ensure the project root is on sys.path so "from app import create_app" works
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from database import User

app = create_app()

with app.app_context():
    users = User.query.with_entities(User.id, User.name, User.email, User.role).order_by(User.created_at).all()
    for u in users:
        print(u.id, u.name, u.email, u.role.value)
