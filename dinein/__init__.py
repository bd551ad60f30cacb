"""
                Dine-in Menu & Order Service

Restaurant storefront and staff backend: table ordering, order status
tracking with live staff alerts, and sales reporting.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
