"""
HVAC Pricing Tool Package

Sell-price calculation, price-request ledger and approval workflow for
HVAC equipment (VRF systems, chillers, air handling units).
"""

__version__ = "1.0.0"
