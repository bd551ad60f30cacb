"""
                        Services Module

Contains all business logic services with the hybrid architecture pattern.
Backends have a Mock (development, tests) and a Real (production)
implementation, selected by configuration.

Services:
    - store: Data store (in-memory / SQLAlchemy)
    - realtime: Change feed (in-process / Redis pub/sub)
    - notifications: Staff alert sinks (recording / WebSocket)
    - pricing, cart, orders, checkout: Storefront ordering
    - status, notifier: Staff order workflow
    - reports, excel_manager: Dashboard and Excel export
"""

from dinein.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
