"""
Text search and structured filters over the current dataset.
"""
