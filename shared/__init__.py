"""
Shared Kernel

Base classes and plumbing shared by the booking, finance, notification
and subscription contexts: entities and value objects, the unit of work
and the message bus that carries domain events between contexts.
"""
