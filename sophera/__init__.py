"""
Sophera - patient wellness and treatment-journey tracking backend.
"""

__version__ = "0.1.0"
