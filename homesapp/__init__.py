"""
HomesApp platform backend: property listings, appointments, agency commissions and accounting.
"""

__version__ = "1.0.0"
