"""
Polls module (admin-only).

Scope:
- Polls CRUD with slug derived from the title when left blank
- Poll options (label + position) edited inline under each poll
"""
