"""
Document modules.

Each module declares the workflows and save-time validation for a family
of documents.  ``income`` covers everything the charter company issues to
its customers.
"""
