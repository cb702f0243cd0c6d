"""
Leave approval workflow core: policy rules, balance ledger and approval chain.

Nothing in this package imports FastAPI or SQLAlchemy.
"""
