import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from auth import role_required, token_required
from database import Appointment, BloodRequest, Donation, Role, User, db
from schemas import UserUpdatePayload

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)

RECENT_LIMIT = 5


def _recent_activity(user):
    donations = (Donation.query.filter_by(donor_id=user.id)
                 .order_by(Donation.donation_date.desc()).limit(RECENT_LIMIT).all())
    appointments = (Appointment.query.filter_by(user_id=user.id)
                    .order_by(Appointment.appointment_date.desc()).limit(RECENT_LIMIT).all())
    requests = (BloodRequest.query.filter_by(requester_id=user.id)
                .order_by(BloodRequest.request_date.desc()).limit(RECENT_LIMIT).all())
    return {
        'donations': [
            {'id': d.id, 'donationDate': d.donation_date.isoformat(), 'status': d.status.value}
            for d in donations
        ],
        'appointments': [
            {'id': a.id, 'appointmentDate': a.appointment_date.isoformat(), 'status': a.status.value}
            for a in appointments
        ],
        'bloodRequests': [
            {'id': r.id, 'bloodType': r.blood_type.value, 'status': r.status.value,
             'requestDate': r.request_date.isoformat()}
            for r in requests
        ],
    }


@users_bp.route('', methods=['GET'])
@role_required([Role.ADMIN], 'Only admins can list users')
def list_users(current_user):
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({'users': [u.to_dict() for u in users]})


@users_bp.route('/<user_id>', methods=['GET'])
@token_required
def get_user(current_user, user_id):
    if current_user.id != user_id and not current_user.is_admin:
        return jsonify({'error': "You don't have permission to view this user"}), 403

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    user_data = user.to_dict()
    if current_user.is_admin:
        user_data.update(_recent_activity(user))
    return jsonify({'user': user_data})


@users_bp.route('/<user_id>', methods=['PATCH'])
@token_required
def update_user(current_user, user_id):
    if current_user.id != user_id and not current_user.is_admin:
        return jsonify({'error': "You don't have permission to update this user"}), 403

    data = UserUpdatePayload.model_validate(request.get_json(silent=True) or {})

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    if data.role and not current_user.is_admin:
        return jsonify({'error': "You don't have permission to change roles"}), 403

    if data.email and data.email != user.email:
        if User.query.filter_by(email=data.email).first():
            return jsonify({'error': 'Email is already in use'}), 409

    if data.name:
        user.name = data.name
    if data.email:
        user.email = data.email
    if data.password:
        user.password = generate_password_hash(data.password)
    if data.role:
        user.role = data.role

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating user {user_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'user': user.to_dict(), 'message': 'User updated successfully'})


@users_bp.route('/<user_id>', methods=['DELETE'])
@role_required([Role.ADMIN], 'Unauthorized. Only admins can delete users')
def delete_user(current_user, user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    if user.id == current_user.id:
        return jsonify({'error': 'You cannot delete your own account'}), 400

    if user.donations or user.appointments or user.blood_requests:
        return jsonify({
            'error': 'Cannot delete a user with existing donations, appointments or blood requests'
        }), 409

    email = user.email
    try:
        db.session.delete(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting user {user_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    logger.info(f"{current_user.email} deleted user {email}")
    return jsonify({'message': 'User deleted successfully'})
