"""
Repository layer for data access operations.
"""

from homesapp.repositories.base import BaseRepository
from homesapp.repositories.user import UserRepository, AgencyRepository, PermissionRepository
from homesapp.repositories.property import PropertyRepository, PropertyStaffRepository, PropertySearchFilters
from homesapp.repositories.appointment import AppointmentRepository
from homesapp.repositories.catalog import (
    PresentationCardRepository,
    ServiceProviderRepository,
    ServiceRepository,
    OfferRepository,
)
from homesapp.repositories.lead import LeadRepository
from homesapp.repositories.commission import (
    CommissionProfileRepository,
    RoleOverrideRepository,
    UserOverrideRepository,
    LeadOverrideRepository,
    CommissionAuditLogRepository,
)
from homesapp.repositories.payment import PaymentRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "AgencyRepository",
    "PermissionRepository",
    "PropertyRepository",
    "PropertyStaffRepository",
    "PropertySearchFilters",
    "AppointmentRepository",
    "PresentationCardRepository",
    "ServiceProviderRepository",
    "ServiceRepository",
    "OfferRepository",
    "LeadRepository",
    "CommissionProfileRepository",
    "RoleOverrideRepository",
    "UserOverrideRepository",
    "LeadOverrideRepository",
    "CommissionAuditLogRepository",
    "PaymentRepository",
]
