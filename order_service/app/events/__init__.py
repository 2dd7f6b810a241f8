"""
Events module for the Order Service.

Producers:
    - OrderEventProducer: inventory adjustments (``inventory_updates``) and
      order-history records (``order_updates``)
"""

from .producers import OrderEventProducer

__all__ = ["OrderEventProducer"]
