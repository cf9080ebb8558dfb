"""
Bronze layer ingestion for the CRM + ERP data warehouse.

This package clears and fully reloads the raw-layer tables from the source
system extracts, timing each dataset and stopping at the first failure.
"""
