"""
ERP adapters.
"""

from .auth_gateway import ErpAuthGateway
from .gateway import ErpGateway

__all__ = ["ErpGateway", "ErpAuthGateway"]
