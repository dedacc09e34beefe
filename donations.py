import logging
from datetime import timedelta

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from auth import is_owner, role_required, token_required
from database import (
    BLOOD_SHELF_LIFE_DAYS,
    BloodInventory,
    Donation,
    DonationStatus,
    InventoryStatus,
    Role,
    User,
    db,
)
from schemas import DonationCreatePayload, DonationUpdatePayload

logger = logging.getLogger(__name__)

donations_bp = Blueprint('donations', __name__)


def stock_donation(donation):
    """Put a completed donation on the shelf as a new AVAILABLE inventory row.

    The row is flushed and linked to the donation in the caller's unit of
    work, so the insert and the link commit (or roll back) together.
    """
    row = BloodInventory(
        blood_type=donation.blood_type,
        quantity=donation.quantity,
        expiry_date=donation.donation_date + timedelta(days=BLOOD_SHELF_LIFE_DAYS),
        status=InventoryStatus.AVAILABLE,
    )
    db.session.add(row)
    db.session.flush()
    donation.blood_inventory_id = row.id
    donation.blood_inventory = row
    return row


@donations_bp.route('', methods=['GET'])
@token_required
def list_donations(current_user):
    if current_user.is_admin:
        donations = Donation.query.order_by(Donation.donation_date.desc()).all()
        return jsonify({'donations': [d.to_dict(include_donor=True) for d in donations]})

    if current_user.role == Role.DONOR:
        donations = (Donation.query.filter_by(donor_id=current_user.id)
                     .order_by(Donation.donation_date.desc()).all())
        return jsonify({'donations': [d.to_dict() for d in donations]})

    return jsonify({'error': "You don't have permission to view donations"}), 403


@donations_bp.route('/<donation_id>', methods=['GET'])
@token_required
def get_donation(current_user, donation_id):
    donation = db.session.get(Donation, donation_id)
    if not donation:
        return jsonify({'error': 'Donation not found'}), 404

    if not current_user.is_admin and not is_owner(current_user, donation.donor_id):
        return jsonify({'error': 'Unauthorized. You can only view your own donations.'}), 403

    return jsonify({'donation': donation.to_dict(include_donor=True)})


@donations_bp.route('', methods=['POST'])
@role_required([Role.ADMIN], 'Only administrators can record donations')
def create_donation(current_user):
    data = DonationCreatePayload.model_validate(request.get_json(silent=True) or {})

    if not data.donor_id:
        return jsonify({'error': 'Donor ID is required'}), 400

    donor = db.session.get(User, data.donor_id)
    if not donor or donor.role != Role.DONOR:
        return jsonify({'error': 'Invalid donor ID'}), 400

    try:
        donation = Donation(
            donor_id=donor.id,
            donation_date=data.donation_date,
            quantity=data.quantity,
            blood_type=data.blood_type,
            status=data.status,
            notes=data.notes,
        )
        db.session.add(donation)

        row = None
        if donation.status == DonationStatus.COMPLETED and donation.blood_type:
            row = stock_donation(donation)

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error recording donation for {data.donor_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    if row:
        logger.info(f"Donation {donation.id} stocked as inventory {row.id}")
        return jsonify({
            'donation': donation.to_dict(),
            'bloodInventory': row.to_dict(),
            'message': 'Donation recorded and added to inventory successfully',
        }), 201

    return jsonify({'donation': donation.to_dict(),
                    'message': 'Donation recorded successfully'}), 201


@donations_bp.route('/<donation_id>', methods=['PATCH'])
@token_required
def update_donation(current_user, donation_id):
    data = DonationUpdatePayload.model_validate(request.get_json(silent=True) or {})

    donation = db.session.get(Donation, donation_id)
    if not donation:
        return jsonify({'error': 'Donation not found'}), 404

    changes = data.provided()

    if not current_user.is_admin:
        if (current_user.role != Role.DONOR
                or not is_owner(current_user, donation.donor_id)
                or donation.status != DonationStatus.SCHEDULED):
            return jsonify({
                'error': 'Unauthorized. You can only update your own scheduled donations.'
            }), 403

        status = changes.get('status')
        if status is not None and status != DonationStatus.CANCELLED:
            return jsonify({
                'error': f"You don't have permission to change the status to {status.value}"
            }), 403

        if 'notes' in changes:
            donation.notes = changes['notes']
        if status == DonationStatus.CANCELLED:
            donation.status = DonationStatus.CANCELLED
    else:
        stocking = (changes.get('status') == DonationStatus.COMPLETED
                    and donation.status != DonationStatus.COMPLETED
                    and donation.blood_inventory_id is None)
        if stocking and (changes.get('blood_type') or donation.blood_type) is None:
            return jsonify({'error': 'Blood type is required to complete a donation'}), 400

        for field in ('blood_type', 'quantity', 'donation_date', 'status'):
            if changes.get(field) is not None:
                setattr(donation, field, changes[field])
        if 'notes' in changes:
            donation.notes = changes['notes']

        if stocking:
            row = stock_donation(donation)
            logger.info(f"Donation {donation.id} completed, stocked as inventory {row.id}")

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating donation {donation_id}: {e}")
        return jsonify({'error': 'Failed to update donation'}), 500

    return jsonify({'donation': donation.to_dict(include_donor=True),
                    'message': 'Donation updated successfully'})


@donations_bp.route('/<donation_id>', methods=['DELETE'])
@token_required
def delete_donation(current_user, donation_id):
    donation = db.session.get(Donation, donation_id)
    if not donation:
        return jsonify({'error': 'Donation not found'}), 404

    if not current_user.is_admin and (not is_owner(current_user, donation.donor_id)
                                      or donation.status != DonationStatus.SCHEDULED):
        return jsonify({
            'error': 'Unauthorized. You can only delete your own scheduled donations.'
        }), 403

    try:
        # the linked inventory row goes with the donation, reserved or not
        row = donation.blood_inventory
        db.session.delete(donation)
        if row is not None:
            db.session.delete(row)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting donation {donation_id}: {e}")
        return jsonify({'error': 'Failed to delete donation'}), 500

    return jsonify({'message': 'Donation deleted successfully'})
