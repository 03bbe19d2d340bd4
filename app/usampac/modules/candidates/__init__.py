"""
Candidate review module (admin-only).

Scope:
- Dashboard with pending/approved/rejected counts and a recent sample of each
- Pending queue with approve/reject (optional reviewer notes)
- Approved and rejected listings

Status transitions happen only through the backend procedures
approve_candidate / reject_candidate.
"""
