"""
Payroll Kernel - pay statement derivation core

Domain model and shared infrastructure for deriving Japanese helper pay
statements from attendance records:
- Shift records and helper pay profiles (read-only inputs)
- The mutable Payslip aggregate with typed per-field override pins
- Structured logging and a typed exception hierarchy
"""

__version__ = "0.1.0"
