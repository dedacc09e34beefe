import logging
from datetime import timedelta

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from auth import role_required
from database import (
    Appointment,
    AppointmentStatus,
    BloodInventory,
    BloodRequest,
    BloodType,
    Donation,
    DonationStatus,
    InventoryStatus,
    RequestStatus,
    Role,
    User,
    db,
    utcnow,
)

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


def count_by(column, enum_cls):
    """Row counts per enum member, zero-filled for members with no rows."""
    counts = {member.value: 0 for member in enum_cls}
    for value, count in db.session.query(column, db.func.count()).group_by(column).all():
        counts[value.value] = count
    return counts


def available_units_by_type():
    units = {bt.value: 0 for bt in BloodType}
    rows = (db.session.query(BloodInventory.blood_type, db.func.sum(BloodInventory.quantity))
            .filter(BloodInventory.status == InventoryStatus.AVAILABLE)
            .group_by(BloodInventory.blood_type).all())
    for blood_type, total in rows:
        units[blood_type.value] = int(total or 0)
    return units


def todays_appointments():
    start = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return Appointment.query.filter(
        Appointment.appointment_date >= start,
        Appointment.appointment_date < end,
        Appointment.status == AppointmentStatus.SCHEDULED,
    ).count()


def collect_stats():
    roles = count_by(User.role, Role)
    inventory = count_by(BloodInventory.status, InventoryStatus)
    donations = count_by(Donation.status, DonationStatus)
    appointments = count_by(Appointment.status, AppointmentStatus)
    requests = count_by(BloodRequest.status, RequestStatus)
    by_type = available_units_by_type()

    return {
        'users': {
            'total': User.query.count(),
            'admins': roles[Role.ADMIN.value],
            'donors': roles[Role.DONOR.value],
            'recipients': roles[Role.RECIPIENT.value],
        },
        'bloodInventory': {
            'total': BloodInventory.query.count(),
            'available': inventory[InventoryStatus.AVAILABLE.value],
            'availableUnits': sum(by_type.values()),
            'byStatus': inventory,
            'byType': by_type,
        },
        'donations': {
            'total': Donation.query.count(),
            'completed': donations[DonationStatus.COMPLETED.value],
            'scheduled': donations[DonationStatus.SCHEDULED.value],
            'byStatus': donations,
        },
        'appointments': {
            'total': Appointment.query.count(),
            'scheduled': appointments[AppointmentStatus.SCHEDULED.value],
            'today': todays_appointments(),
            'byStatus': appointments,
        },
        'requests': {
            'total': BloodRequest.query.count(),
            'pending': requests[RequestStatus.PENDING.value],
            'fulfilled': requests[RequestStatus.FULFILLED.value],
            'byStatus': requests,
        },
    }


@dashboard_bp.route('/dashboard', methods=['GET'])
@role_required([Role.ADMIN], 'Unauthorized. Only admins can access dashboard statistics')
def get_dashboard_stats(current_user):
    """Get dashboard statistics"""
    try:
        stats = collect_stats()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dashboard statistics: {e}")
        return jsonify({'error': 'Failed to fetch dashboard statistics'}), 500

    return jsonify({'stats': stats})
