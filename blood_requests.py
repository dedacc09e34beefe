import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from auth import is_owner, role_required, token_required
from database import BloodInventory, BloodRequest, InventoryStatus, RequestStatus, Role, db, utcnow
from schemas import BloodRequestCreatePayload, BloodRequestUpdatePayload

logger = logging.getLogger(__name__)

blood_requests_bp = Blueprint('blood_requests', __name__)

# what a recipient may touch on their own pending request
RECIPIENT_FIELDS = ('urgency', 'notes', 'status')


@blood_requests_bp.route('', methods=['GET'])
@token_required
def list_blood_requests(current_user):
    if current_user.is_admin:
        requests = BloodRequest.query.order_by(BloodRequest.request_date.desc()).all()
        return jsonify({'bloodRequests': [r.to_dict(include_requester=True) for r in requests]})

    requests = (BloodRequest.query.filter_by(requester_id=current_user.id)
                .order_by(BloodRequest.request_date.desc()).all())
    return jsonify({'bloodRequests': [r.to_dict() for r in requests]})


@blood_requests_bp.route('/<request_id>', methods=['GET'])
@token_required
def get_blood_request(current_user, request_id):
    blood_request = db.session.get(BloodRequest, request_id)
    if not blood_request:
        return jsonify({'error': 'Blood request not found'}), 404

    if not current_user.is_admin and not is_owner(current_user, blood_request.requester_id):
        return jsonify({'error': "You don't have permission to view this blood request"}), 403

    return jsonify({'bloodRequest': blood_request.to_dict(include_requester=True)})


@blood_requests_bp.route('', methods=['POST'])
@role_required([Role.RECIPIENT, Role.ADMIN], 'Only recipients can request blood')
def create_blood_request(current_user):
    data = BloodRequestCreatePayload.model_validate(request.get_json(silent=True) or {})

    try:
        blood_request = BloodRequest(
            requester_id=current_user.id,
            blood_type=data.blood_type,
            quantity=data.quantity,
            urgency=data.urgency,
            notes=data.notes,
            status=RequestStatus.PENDING,
            request_date=utcnow(),
        )
        db.session.add(blood_request)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating blood request for {current_user.email}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'bloodRequest': blood_request.to_dict(),
                    'message': 'Blood request submitted successfully'}), 201


def _recipient_update(current_user, blood_request, changes):
    if not is_owner(current_user, blood_request.requester_id):
        return jsonify({'error': "You don't have permission to update this blood request"}), 403

    status = changes.get('status')
    if status is not None and status != RequestStatus.CANCELLED:
        return jsonify({
            'error': f"You don't have permission to change the status to {status.value}"
        }), 403

    if blood_request.status != RequestStatus.PENDING:
        return jsonify({'error': 'Only pending blood requests can be changed'}), 403

    for field in RECIPIENT_FIELDS:
        if field in changes and (changes[field] is not None or field == 'notes'):
            setattr(blood_request, field, changes[field])
    return None


def _admin_update(blood_request, changes):
    status = changes.get('status')
    inventory_id = changes.get('blood_inventory_id', blood_request.blood_inventory_id)

    if status == RequestStatus.FULFILLED and not inventory_id:
        return jsonify({'error': 'A blood inventory ID is required to fulfill a request'}), 400

    row = None
    if inventory_id:
        row = db.session.get(BloodInventory, inventory_id)
        if row is None:
            return jsonify({'error': 'Invalid blood inventory ID'}), 400
    if status != RequestStatus.FULFILLED:
        row = None

    for field in ('blood_type', 'quantity', 'urgency', 'status'):
        if changes.get(field) is not None:
            setattr(blood_request, field, changes[field])
    if 'notes' in changes:
        blood_request.notes = changes['notes']
    if 'blood_inventory_id' in changes:
        blood_request.blood_inventory_id = changes['blood_inventory_id']

    if row is not None:
        # availability of the row is not checked; two admins can fulfill from the same row
        blood_request.fulfilled_date = changes.get('fulfilled_date') or utcnow()
        row.status = InventoryStatus.USED
        logger.info(f"Blood request {blood_request.id} fulfilled from inventory {row.id}")
    return None


@blood_requests_bp.route('/<request_id>', methods=['PATCH'])
@token_required
def update_blood_request(current_user, request_id):
    data = BloodRequestUpdatePayload.model_validate(request.get_json(silent=True) or {})

    blood_request = db.session.get(BloodRequest, request_id)
    if not blood_request:
        return jsonify({'error': 'Blood request not found'}), 404

    changes = data.provided()
    if current_user.is_admin:
        refusal = _admin_update(blood_request, changes)
    else:
        refusal = _recipient_update(current_user, blood_request, changes)
    if refusal is not None:
        return refusal

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error updating blood request {request_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'bloodRequest': blood_request.to_dict(),
                    'message': 'Blood request updated successfully'})


@blood_requests_bp.route('/<request_id>', methods=['DELETE'])
@token_required
def delete_blood_request(current_user, request_id):
    blood_request = db.session.get(BloodRequest, request_id)
    if not blood_request:
        return jsonify({'error': 'Blood request not found'}), 404

    if not current_user.is_admin and (not is_owner(current_user, blood_request.requester_id)
                                      or blood_request.status != RequestStatus.PENDING):
        return jsonify({'error': "You don't have permission to delete this blood request"}), 403

    try:
        db.session.delete(blood_request)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error deleting blood request {request_id}: {e}")
        return jsonify({'error': 'Something went wrong. Please try again.'}), 500

    return jsonify({'message': 'Blood request deleted successfully'})
