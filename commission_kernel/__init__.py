"""
Commission Kernel

Tenant accounts, commission-split payment sessions, and exactly-once sale
recording for a multi-tenant point-of-sale platform:
- Jurisdiction-aware tenant onboarding (real or virtual accounts)
- Half-up commission/net splits in integer minor units
- Idempotent sale persistence via datastore uniqueness constraints
"""

__version__ = "0.1.0"
