"""
Compliance service for transfer and address validation.
"""
