"""
Service layer holding the business rules of each module.
"""

from homesapp.services.auth import AuthService
from homesapp.services.user import UserService
from homesapp.services.property import PropertyService
from homesapp.services.appointment import AppointmentService
from homesapp.services.catalog import CatalogService
from homesapp.services.commission import CommissionService
from homesapp.services.lead import LeadService
from homesapp.services.accounting import AccountingService
from homesapp.services.error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "UserService",
    "PropertyService",
    "AppointmentService",
    "CatalogService",
    "CommissionService",
    "LeadService",
    "AccountingService",
    "ErrorHandlerService",
]
