# ==== SERVICES PACKAGE ==== #

"""
Services package for the credit validation engine.

This package contains the store readers (accounts, ledger, invoices, check
portfolio, block history, policies), the policy evaluator and the two entry
points built on them: the full credit validator and the quick status service.
"""
