"""
Job proximity clustering and route efficiency service.
"""

__version__ = "1.0.0"
