# pte_portal/models/dashboard.py
from pydantic import BaseModel


class AdminDashboardStats(BaseModel):
    total_students: int
    active_tasks: int
    pending_reviews: int
    total_submissions: int
    approved_submissions: int
    rejected_submissions: int


class StudentDashboardStats(BaseModel):
    assigned_tasks: int
    completed_tasks: int
    pending_tasks: int
    rejected_tasks: int
