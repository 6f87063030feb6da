"""
ClinicDesk: point-of-care clinic front desk

Drives a generic ERP record store through a full clinic visit: registration,
doctor queueing, consultation, pharmacy dispensing and checkout.
"""

__version__ = "0.1.0"
__author__ = "ClinicDesk Team"
__description__ = "Clinic visit orchestration over a generic ERP record store"
