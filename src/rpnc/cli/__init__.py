"""
rpnc Command-Line Interface
===========================

- **rpnc**: compile an RPN expression to Y86 assembly, optionally running it

The tool is a Click application; see `rpnc --help`.
"""

__all__ = ["rpnc"]
