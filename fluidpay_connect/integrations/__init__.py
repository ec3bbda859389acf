"""
Integration modules for FluidPay Connect

Contains adapters and clients for external systems:
- Payment gateways (FluidPay)
"""
