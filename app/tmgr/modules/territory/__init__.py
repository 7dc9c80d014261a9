"""
Territory and sales-representative rollups, derived from the current dataset.
"""
