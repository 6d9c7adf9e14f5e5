"""
Database models for the HomesApp platform.
"""

from homesapp.models.user import User, UserRole, UserStatus, Agency
from homesapp.models.property import (
    Property, PropertyStaff, PropertyType, PropertyStatus, ApprovalStatus, StaffRole
)
from homesapp.models.appointment import Appointment, AppointmentStatus, AppointmentType
from homesapp.models.catalog import PresentationCard, ServiceProvider, Service, Offer, OfferStatus
from homesapp.models.permission import Permission, KNOWN_PERMISSIONS
from homesapp.models.lead import Lead, LeadStatus
from homesapp.models.commission import (
    CommissionType,
    CommissionProfile,
    RoleCommissionOverride,
    UserCommissionOverride,
    LeadCommissionOverride,
    CommissionAuditLog,
)
from homesapp.models.payment import Payment, PaymentStatus

# Export all models for easy importing
__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Agency",
    "Property",
    "PropertyStaff",
    "PropertyType",
    "PropertyStatus",
    "ApprovalStatus",
    "StaffRole",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "PresentationCard",
    "ServiceProvider",
    "Service",
    "Offer",
    "OfferStatus",
    "Permission",
    "KNOWN_PERMISSIONS",
    "Lead",
    "LeadStatus",
    "CommissionType",
    "CommissionProfile",
    "RoleCommissionOverride",
    "UserCommissionOverride",
    "LeadCommissionOverride",
    "CommissionAuditLog",
    "Payment",
    "PaymentStatus",
]
