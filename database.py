import enum
import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Current UTC time as a naive datetime, the way every column stores it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class Role(str, enum.Enum):
    ADMIN = 'ADMIN'
    DONOR = 'DONOR'
    RECIPIENT = 'RECIPIENT'


class BloodType(str, enum.Enum):
    A_POSITIVE = 'A_POSITIVE'
    A_NEGATIVE = 'A_NEGATIVE'
    B_POSITIVE = 'B_POSITIVE'
    B_NEGATIVE = 'B_NEGATIVE'
    AB_POSITIVE = 'AB_POSITIVE'
    AB_NEGATIVE = 'AB_NEGATIVE'
    O_POSITIVE = 'O_POSITIVE'
    O_NEGATIVE = 'O_NEGATIVE'

    @property
    def label(self):
        return BLOOD_TYPE_LABELS[self]


BLOOD_TYPE_LABELS = {
    BloodType.A_POSITIVE: 'A+',
    BloodType.A_NEGATIVE: 'A-',
    BloodType.B_POSITIVE: 'B+',
    BloodType.B_NEGATIVE: 'B-',
    BloodType.AB_POSITIVE: 'AB+',
    BloodType.AB_NEGATIVE: 'AB-',
    BloodType.O_POSITIVE: 'O+',
    BloodType.O_NEGATIVE: 'O-',
}


class InventoryStatus(str, enum.Enum):
    AVAILABLE = 'AVAILABLE'
    RESERVED = 'RESERVED'
    USED = 'USED'
    EXPIRED = 'EXPIRED'


class DonationStatus(str, enum.Enum):
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class RequestUrgency(str, enum.Enum):
    LOW = 'LOW'
    NORMAL = 'NORMAL'
    HIGH = 'HIGH'
    CRITICAL = 'CRITICAL'


class RequestStatus(str, enum.Enum):
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    FULFILLED = 'FULFILLED'
    REJECTED = 'REJECTED'
    CANCELLED = 'CANCELLED'


# Whole blood keeps for 42 days after collection
BLOOD_SHELF_LIFE_DAYS = 42


class User(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(Role, name='user_role'), nullable=False, default=Role.RECIPIENT)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    donations = db.relationship('Donation', backref='donor', lazy=True)
    appointments = db.relationship('Appointment', backref='user', lazy=True)
    blood_requests = db.relationship('BloodRequest', backref='requester', lazy=True)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    def summary(self):
        return {'id': self.id, 'name': self.name, 'email': self.email}

    def to_dict(self):
        # never expose the password hash
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<User {self.email} ({self.role.value})>'


class BloodInventory(db.Model):
    __tablename__ = 'blood_inventory'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    blood_type = db.Column(db.Enum(BloodType, name='blood_type'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.Enum(InventoryStatus, name='inventory_status'), nullable=False,
                       default=InventoryStatus.AVAILABLE)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # deleting a row nulls the references held by donations and requests
    donations = db.relationship('Donation', backref='blood_inventory', lazy=True)
    blood_requests = db.relationship('BloodRequest', backref='blood_inventory', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'bloodType': self.blood_type.value,
            'bloodTypeLabel': self.blood_type.label,
            'quantity': self.quantity,
            'expiryDate': _iso(self.expiry_date),
            'status': self.status.value,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<BloodInventory {self.blood_type.value} x{self.quantity} {self.status.value}>'


class Donation(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    donor_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False)
    blood_inventory_id = db.Column(db.String(36),
                                   db.ForeignKey('blood_inventory.id', ondelete='SET NULL'))
    blood_type = db.Column(db.Enum(BloodType, name='blood_type'))
    donation_date = db.Column(db.DateTime, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.Enum(DonationStatus, name='donation_status'), nullable=False,
                       default=DonationStatus.SCHEDULED)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self, include_donor=False):
        data = {
            'id': self.id,
            'donorId': self.donor_id,
            'bloodInventoryId': self.blood_inventory_id,
            'bloodType': self.blood_type.value if self.blood_type else None,
            'donationDate': _iso(self.donation_date),
            'quantity': self.quantity,
            'status': self.status.value,
            'notes': self.notes,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'bloodInventory': self.blood_inventory.to_dict() if self.blood_inventory else None,
        }
        if include_donor:
            data['donor'] = self.donor.summary() if self.donor else None
        return data


class Appointment(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False)
    appointment_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.Enum(AppointmentStatus, name='appointment_status'), nullable=False,
                       default=AppointmentStatus.SCHEDULED)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self, include_user=False):
        data = {
            'id': self.id,
            'userId': self.user_id,
            'appointmentDate': _iso(self.appointment_date),
            'status': self.status.value,
            'notes': self.notes,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_user:
            data['user'] = self.user.summary() if self.user else None
        return data


class BloodRequest(db.Model):
    __tablename__ = 'blood_request'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    requester_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False)
    blood_inventory_id = db.Column(db.String(36),
                                   db.ForeignKey('blood_inventory.id', ondelete='SET NULL'))
    blood_type = db.Column(db.Enum(BloodType, name='blood_type'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    urgency = db.Column(db.Enum(RequestUrgency, name='request_urgency'), nullable=False,
                        default=RequestUrgency.NORMAL)
    status = db.Column(db.Enum(RequestStatus, name='request_status'), nullable=False,
                       default=RequestStatus.PENDING)
    request_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    fulfilled_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self, include_requester=False):
        data = {
            'id': self.id,
            'requesterId': self.requester_id,
            'bloodInventoryId': self.blood_inventory_id,
            'bloodType': self.blood_type.value,
            'quantity': self.quantity,
            'urgency': self.urgency.value,
            'status': self.status.value,
            'requestDate': _iso(self.request_date),
            'fulfilledDate': _iso(self.fulfilled_date),
            'notes': self.notes,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'bloodInventory': self.blood_inventory.to_dict() if self.blood_inventory else None,
        }
        if include_requester:
            data['requester'] = self.requester.summary() if self.requester else None
        return data
