"""Billing provider adapters."""
