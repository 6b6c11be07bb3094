"""Salary advance engine.

Eligibility, fee arithmetic, advance lifecycle and mobile-money
disbursement reconciliation for earned-wage advances.
"""

__version__ = "0.1.0"
