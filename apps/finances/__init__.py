"""Finances app package.

Payment gateway integration (Razorpay orders, checkout and webhook
signature checks) and the append-only audit log of every interaction
with the gateway.
"""
