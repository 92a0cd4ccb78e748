"""
Inventory stock ledger.

Models:
- InventoryItem (current on-hand quantity and reorder threshold)
- InventoryLog (append-only events that moved the quantity)
"""
