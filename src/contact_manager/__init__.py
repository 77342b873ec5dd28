"""
Contact management service with CSV import and realtime notifications.
"""

__version__ = "0.1.0"
