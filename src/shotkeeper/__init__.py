"""
Shotkeeper

Screenshot library manager: imports screenshots, recognizes their text and
sorts them into smart folders (recipes, prices, addresses, URLs, phone
numbers and user-defined keyword folders).
"""

__version__ = "0.1.0"
