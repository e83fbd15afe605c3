"""Domain layer for finca application.

Services are imported from their modules directly (finca.domain.account,
finca.domain.bank_import, ...); importing them here would create a cycle with
finca.database.base, which depends on finca.domain.entities.
"""
