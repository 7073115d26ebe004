"""
MediBook

A FastAPI-based patient/doctor appointment booking service with medical
records, vitals tracking and role-based access control.
"""

__version__ = "1.0.0"
