# ExecBoard - Healthcare Executive Job Board
"""
ExecBoard - A job board for healthcare leadership roles.

Candidates and employers register, employers post paid listings that an
admin reviews, candidates apply and message employers, and AI helpers
analyze resumes and rank matches.
"""

__version__ = "0.1.0"
__author__ = "ExecBoard"
__description__ = "Healthcare executive job board API"
