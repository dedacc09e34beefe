import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from auth import role_required
from database import BloodInventory, Role, db
from schemas import InventoryCreatePayload, InventoryFilter, InventoryUpdatePayload

logger = logging.getLogger(__name__)

inventory_bp = Blueprint('inventory', __name__)

ADMIN_ONLY = [Role.ADMIN]


@inventory_bp.route('', methods=['GET'])
def list_inventory():
    """Public listing, most recently touched rows first."""
    filters = InventoryFilter.model_validate(request.args.to_dict())

    query = BloodInventory.query
    if filters.blood_type:
        query = query.filter_by(blood_type=filters.blood_type)
    if filters.status:
        query = query.filter_by(status=filters.status)

    try:
        rows = query.order_by(BloodInventory.updated_at.desc()).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching blood inventory: {e}")
        return jsonify({'error': 'Failed to fetch blood inventory'}), 500

    return jsonify({'bloodInventory': [row.to_dict() for row in rows]})


@inventory_bp.route('/<inventory_id>', methods=['GET'])
def get_inventory(inventory_id):
    row = db.session.get(BloodInventory, inventory_id)
    if not row:
        return jsonify({'error': 'Blood inventory not found'}), 404
    return jsonify({'bloodInventory': row.to_dict()})


@inventory_bp.route('', methods=['POST'])
@role_required(ADMIN_ONLY, 'Unauthorized. Only admins can add blood inventory')
def create_inventory(current_user):
    data = InventoryCreatePayload.model_validate(request.get_json(silent=True) or {})

    try:
        row = BloodInventory(
            blood_type=data.blood_type,
            quantity=data.quantity,
            expiry_date=data.expiry_date,
            status=data.status,
        )
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error adding blood inventory: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    logger.info(f"{current_user.email} added {row.quantity} units of {row.blood_type.value}")
    return jsonify({'bloodInventory': row.to_dict(),
                    'message': 'Blood inventory added successfully'}), 201


@inventory_bp.route('/<inventory_id>', methods=['PATCH'])
@role_required(ADMIN_ONLY, 'Unauthorized. Only admins can update blood inventory')
def update_inventory(current_user, inventory_id):
    data = InventoryUpdatePayload.model_validate(request.get_json(silent=True) or {})

    row = db.session.get(BloodInventory, inventory_id)
    if not row:
        return jsonify({'error': 'Blood inventory not found'}), 404

    # null means "leave as is" for every inventory field
    for field, value in data.provided().items():
        if value is not None:
            setattr(row, field, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating blood inventory {inventory_id}: {e}")
        return jsonify({'error': 'Failed to update blood inventory'}), 500

    return jsonify({'bloodInventory': row.to_dict(),
                    'message': 'Blood inventory updated successfully'})


@inventory_bp.route('/<inventory_id>', methods=['DELETE'])
@role_required(ADMIN_ONLY, 'Unauthorized. Only admins can delete blood inventory')
def delete_inventory(current_user, inventory_id):
    row = db.session.get(BloodInventory, inventory_id)
    if not row:
        return jsonify({'error': 'Blood inventory not found'}), 404

    try:
        db.session.delete(row)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting blood inventory {inventory_id}: {e}")
        return jsonify({'error': 'Failed to delete blood inventory'}), 500

    return jsonify({'message': 'Blood inventory deleted successfully'})
