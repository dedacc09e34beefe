import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from auth import is_owner, role_required, token_required
from database import Appointment, AppointmentStatus, Role, db, utcnow
from schemas import AppointmentCreatePayload, AppointmentUpdatePayload

logger = logging.getLogger(__name__)

appointments_bp = Blueprint('appointments', __name__)


@appointments_bp.route('', methods=['GET'])
@token_required
def list_appointments(current_user):
    if current_user.is_admin:
        appointments = Appointment.query.order_by(Appointment.appointment_date.desc()).all()
        return jsonify({'appointments': [a.to_dict(include_user=True) for a in appointments]})

    appointments = (Appointment.query.filter_by(user_id=current_user.id)
                    .order_by(Appointment.appointment_date.desc()).all())
    return jsonify({'appointments': [a.to_dict() for a in appointments]})


@appointments_bp.route('/<appointment_id>', methods=['GET'])
@token_required
def get_appointment(current_user, appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404

    if not current_user.is_admin and not is_owner(current_user, appointment.user_id):
        return jsonify({'error': "You don't have permission to view this appointment"}), 403

    return jsonify({'appointment': appointment.to_dict(include_user=True)})


@appointments_bp.route('', methods=['POST'])
@role_required([Role.DONOR, Role.ADMIN], 'Only donors can schedule appointments')
def create_appointment(current_user):
    data = AppointmentCreatePayload.model_validate(request.get_json(silent=True) or {})

    if data.appointment_date <= utcnow():
        return jsonify({'error': 'Appointment date must be in the future'}), 400

    try:
        appointment = Appointment(
            user_id=current_user.id,
            appointment_date=data.appointment_date,
            notes=data.notes,
            status=AppointmentStatus.SCHEDULED,
        )
        db.session.add(appointment)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error scheduling appointment for {current_user.email}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'appointment': appointment.to_dict(),
                    'message': 'Appointment scheduled successfully'}), 201


@appointments_bp.route('/<appointment_id>', methods=['PATCH'])
@token_required
def update_appointment(current_user, appointment_id):
    data = AppointmentUpdatePayload.model_validate(request.get_json(silent=True) or {})

    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404

    if not current_user.is_admin:
        if not is_owner(current_user, appointment.user_id):
            return jsonify({'error': "You don't have permission to update this appointment"}), 403
        if data.status == AppointmentStatus.COMPLETED:
            return jsonify({'error': 'Only administrators can mark appointments as completed'}), 403

    if data.appointment_date is not None:
        if data.appointment_date <= utcnow() and data.status != AppointmentStatus.CANCELLED:
            return jsonify({'error': 'Appointment date must be in the future'}), 400
        appointment.appointment_date = data.appointment_date
    if data.status is not None:
        appointment.status = data.status
    if 'notes' in data.model_fields_set:
        appointment.notes = data.notes

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating appointment {appointment_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'appointment': appointment.to_dict(),
                    'message': 'Appointment updated successfully'})


@appointments_bp.route('/<appointment_id>', methods=['DELETE'])
@token_required
def delete_appointment(current_user, appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'error': 'Appointment not found'}), 404

    if not current_user.is_admin and not is_owner(current_user, appointment.user_id):
        return jsonify({'error': "You don't have permission to delete this appointment"}), 403

    try:
        db.session.delete(appointment)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting appointment {appointment_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'message': 'Appointment deleted successfully'})
