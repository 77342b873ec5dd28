"""
Contact storage, CSV import and business rules.
"""
