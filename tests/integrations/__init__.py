"""
Integration test modules

Tests for external system integrations including:
- Payment gateways
"""
