# ==== BUSINESS LOGIC PACKAGE ==== #

"""
Business logic package for credit domain rules.

This package contains the decimal arithmetic layer, visibility scopes,
domain status codes, the error taxonomy and the default credit policy
values used by the credit validation engine.
"""
