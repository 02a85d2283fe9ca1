"""HR Request Workflow package.

This package is organized by feature modules (requests, timesheets,
notifications, ...) with a thin Flask controller layer and SOLID
service/repository layers.
"""
