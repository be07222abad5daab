"""Core module - the ERP sync transaction lifecycle.

Request validation, work-item identity, the queue store abstraction and the
submission/status services. Nothing in here depends on the HTTP layer.
"""

__version__ = "1.0.0"
