"""Authenticated admin endpoints for polling control and score replay."""
