# ==== ROUTES PACKAGE ==== #

"""
Routes package for API endpoints.

This package contains the FastAPI route modules of Credit Gate: full credit
validation and quick status for customer lists.
"""
