"""
                Restaurant Storefront

Backend for a small restaurant storefront and admin console:
menu browsing, per-session cart, order placement and an admin
panel for menu, hours, deals, reviews, settings and orders.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
