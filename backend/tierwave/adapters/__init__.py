"""Concrete implementations of ``tierwave.core.protocols``.

One subpackage per concern (payment, pubsub, metrics). Each ships the
production adapter next to the fake the test container uses.
"""
