"""
Customer dataset module.

- Customer record types and their JSON form
- The in-memory, versioned dataset store (replaced wholesale on every load)
- JSON snapshot persistence through the platform storage backend
"""
