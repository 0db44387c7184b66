"""ulb-staff package.

Municipal staff access control, organized by feature modules (principals,
auth, staff, tasks, attendance, assessments, ...) with a thin Flask
controller layer over service/repository layers.
"""
