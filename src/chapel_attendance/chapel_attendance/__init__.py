"""Chapel Attendance package.

This package is organized by feature modules (students, uploads, batches,
exeats, warnings, ...) with a thin Flask controller layer and
service/repository layers underneath.
"""
