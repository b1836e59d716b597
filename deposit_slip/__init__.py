"""
Deposit Slip Service

Digitised bank deposit slips: a browser form, a shared validation rule table
and an async submission API that stores accepted slips as documents.
"""

__version__ = "1.0.0"
