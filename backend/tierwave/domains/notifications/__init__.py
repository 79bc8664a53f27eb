"""Notifications domain: pushes subscription changes to live client connections."""
