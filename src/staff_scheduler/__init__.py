"""
Staff Scheduling System with Weekly Quotas

A command-line application for assigning employees to recurring shifts
based on specializations, preferred days and weekly working-day quotas,
with PDF, CSV and Excel reporting.
"""

__version__ = "1.0.0"
__author__ = "Staff Scheduler Team"
