"""
FluidPay Connect

Payment gateway adapter for the FluidPay payment-processing API.
"""

__version__ = "0.1.0"
