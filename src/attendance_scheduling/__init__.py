"""Attendance & shift scheduling package.

Organized by feature modules (policies, shifts, assignments, attendance,
attendance_exceptions) with repository/service layers and a thin Flask
controller per feature.
"""
