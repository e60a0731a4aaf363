"""
                        Services Module

Contains the backing services with the hybrid architecture pattern.
Each service has a Mock (development) and a Real (production) implementation.

Services:
    - store: MongoDB document store for users, menu, carts and payments
    - payment: Stripe payment intents
"""
