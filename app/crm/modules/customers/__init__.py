"""
Customers module.

- Customers CRUD (create, lookup by id, update, soft delete)
- Search with name/position/started-date filters and pagination
- Each search result carries the customer's active orders
"""
