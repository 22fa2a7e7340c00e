"""Notifications app package.

Handles delivery of booking notifications via email and SMS. Sending
happens in Celery tasks triggered by booking domain events; a delivery
failure never affects the booking itself.
"""
