"""
Notifications module (admin-only): list, create/update and delete.
"""
