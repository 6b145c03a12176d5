"""Gauge program addresses, account layouts and instructions."""
