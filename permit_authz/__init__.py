"""
Role, permission and gate based authorization for Django projects.
"""

__version__ = "0.1.0"
