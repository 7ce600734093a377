"""
paybridge - card payment HTTP services for Stripe and Square.
"""

__version__ = "0.1.0"
