"""Level purchase billing: pricing, signatures, orders and reconciliation."""
