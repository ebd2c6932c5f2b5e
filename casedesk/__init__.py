"""
CaseDesk

Case-management API for a legal practice: cases, clients, tasks, billing and documents,
with AI-assisted document summaries.
"""

__version__ = "1.0.0"
__author__ = "CaseDesk Team"
__description__ = "Case-management API for legal practices"
