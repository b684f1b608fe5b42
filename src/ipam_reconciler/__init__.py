"""Reconcile declared network configuration with an IPAM/DNS appliance."""

__version__ = "0.1.0"
