import logging
from datetime import timedelta
from functools import wraps

import jwt
from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from database import User, db, utcnow
from schemas import LoginPayload, RegisterPayload

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


class AuthError(Exception):
    """Raised when the caller cannot be identified."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def issue_token(user):
    hours = current_app.config.get('JWT_EXPIRES_HOURS', 24)
    return jwt.encode({
        'user_id': user.id,
        'role': user.role.value,
        'exp': utcnow() + timedelta(hours=hours),
    }, current_app.config['SECRET_KEY'], algorithm='HS256')


def resolve_current_user():
    """Return the calling user from a bearer token or the session cookie.

    Returns None when the request carries neither. A token that is present
    but unusable raises AuthError.
    """
    auth_header = request.headers.get('Authorization')
    if auth_header:
        parts = auth_header.split(' ')
        if len(parts) != 2 or parts[0].lower() != 'bearer':
            raise AuthError('Invalid token format')
        try:
            data = jwt.decode(parts[1], current_app.config['SECRET_KEY'], algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            raise AuthError('Token has expired')
        except jwt.InvalidTokenError:
            raise AuthError('Token is invalid')
        user_id = data.get('user_id')
    else:
        user_id = (session.get('user') or {}).get('id')

    if not user_id:
        return None

    user = db.session.get(User, user_id)
    if user is None:
        raise AuthError('User no longer exists')
    return user


def token_required(f):
    """Require a signed-in user and pass it to the view as the first argument."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            current_user = resolve_current_user()
        except AuthError as e:
            return jsonify({'error': e.message}), 401
        if current_user is None:
            return jsonify({'error': 'Unauthorized. Please sign in.'}), 401
        g.current_user = current_user
        return f(current_user, *args, **kwargs)
    return decorated


def role_required(required_roles, message='Insufficient permissions'):
    def decorator(f):
        @wraps(f)
        @token_required
        def decorated_function(current_user, *args, **kwargs):
            if current_user.role not in required_roles:
                return jsonify({'error': message}), 403
            return f(current_user, *args, **kwargs)
        return decorated_function
    return decorator


def is_owner(current_user, owner_id):
    return current_user.id == owner_id


# ------------------------- #
# Registration & Login
# ------------------------- #
@auth_bp.route('/register', methods=['POST'])
def register():
    data = RegisterPayload.model_validate(request.get_json(silent=True) or {})

    if User.query.filter_by(email=data.email).first():
        return jsonify({'error': 'User with this email already exists'}), 409

    try:
        user = User(
            name=data.name,
            email=data.email,
            password=generate_password_hash(data.password),
            role=data.role,
        )
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Registration failed for {data.email}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    logger.info(f"Registered {user.role.value} {user.email}")
    return jsonify({'user': user.to_dict(), 'message': 'User registered successfully'}), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    data = LoginPayload.model_validate(request.get_json(silent=True) or {})

    user = User.query.filter_by(email=data.email).first()
    if not user or not check_password_hash(user.password, data.password):
        return jsonify({'error': 'Invalid credentials'}), 401

    session.permanent = True
    session['user'] = {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role.value,
    }

    logger.info(f"Login for {user.email}")
    return jsonify({
        'message': 'Login successful',
        'token': issue_token(user),
        'user': user.to_dict(),
    }), 200


@auth_bp.route('/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'Logged out'}), 200


@auth_bp.route('/auth/session', methods=['GET'])
@token_required
def auth_status(current_user):
    return jsonify({'loggedIn': True, 'user': current_user.to_dict()}), 200
