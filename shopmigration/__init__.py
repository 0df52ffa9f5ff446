"""
Shop Migration

A resumable migration engine moving shop data (categories, products, prices,
customers) from an arbitrary source data model into a target shop.

Supports:
- Steps split into short, time-boxed invocations
- Continuation tokens that any driver can persist and resubmit
- An idempotent source -> target identity mapping store
- File, database and in-memory source profiles
- REST and in-memory target profiles
- CLI and HTTP drivers
"""

__version__ = "0.1.0"
