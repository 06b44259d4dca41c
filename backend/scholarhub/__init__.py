"""Application package for the scholarship management backend.

This package exposes the service, repository and model modules used by
the FastAPI application. Organisations post scholarships, users apply to
them and organisations decide on the applications they receive.
"""
