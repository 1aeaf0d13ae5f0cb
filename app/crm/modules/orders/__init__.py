"""
Orders module.

- Order create (any authenticated customer)
- Order search (Admin only, includes soft-deleted orders for audit visibility)
"""
