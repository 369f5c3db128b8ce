"""LMS ledger package.

Billing-and-enrollment ledger plus the scheduled attendance lock, organized by
feature modules (fees, enrollments, attendance, ...) with a thin Flask
controller layer over service/repository layers.
"""
