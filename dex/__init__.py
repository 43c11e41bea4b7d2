"""
dex/ - Trading venue integrations.

Subpackages:
- adapters: Venue protocol plus Jupiter-routed and simulated venues
"""
