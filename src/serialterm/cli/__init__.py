"""
SerialTerm Command-Line Interface
=================================

- **serialterm**: interactive serial terminal

Implemented as a Click application.
"""

__all__ = ["serialterm"]
