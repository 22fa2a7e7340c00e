"""Bookings app package.

This app encapsulates the booking domain: turning a raw request into a
validated draft, pricing it, running the checkout with the payment
gateway and committing exactly one booking per successful payment.
Payments that cannot be matched to a booking are escalated to the
reconciliation queue instead of being dropped.
"""
