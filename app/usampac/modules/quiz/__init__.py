"""
Quiz module (admin-only).

Scope:
- Questions CRUD, ordered by position
- Answer options per question (label, is_correct, position)
- Bulk delete of questions, removing their options first
"""
