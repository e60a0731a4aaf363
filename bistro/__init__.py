"""
                Bistro Ordering API

Restaurant ordering backend: bearer-token sign-in, menu management,
shopping carts, payments and admin statistics over a document store,
with a hybrid in-memory/MongoDB architecture.
"""

__version__ = "1.0.0"
