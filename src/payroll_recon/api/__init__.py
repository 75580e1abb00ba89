"""HTTP API for payroll runs."""
