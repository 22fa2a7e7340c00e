"""Subscriptions app package.

Listing plans bought through the booking flow and the entitlement
period each purchase grants.
"""
