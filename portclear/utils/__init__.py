"""
PortClear utilities
"""
